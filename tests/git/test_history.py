"""Tests for the history resolver."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List

import pytest

from git_copyright.errors import GitError
from git_copyright.git.history import (
    Change,
    Commit,
    HistoryResolver,
    parse_log,
    unquote_path,
    walk_history,
)
from git_copyright.git.repository import GitRepository
from git_copyright.models import YearRange
from tests._fixtures.repo_builder import RepoBuilder


def _at(year: int, month: int = 6) -> datetime:
    return datetime(year, month, 1, 12, tzinfo=timezone.utc)


def _commit(sha: str, year: int, *changes: Change, parents: tuple[str, ...] = ("p",)) -> Commit:
    return Commit(sha=sha, parents=parents, time=_at(year), changes=list(changes))


def _added(path: str) -> Change:
    return Change("A", path, path)


def _modified(path: str) -> Change:
    return Change("M", path, path)


def _renamed(old: str, new: str) -> Change:
    return Change("R", old, new)


def test_parse_log_reads_headers_and_name_status() -> None:
    output = (
        "\0bbb\taaa\t2023-03-01T10:00:00+01:00\n"
        "\n"
        "M\tsrc/app.py\n"
        "R087\tsrc/old.py\tsrc/new.py\n"
        "\0aaa\t\t2019-01-02T00:00:00+00:00\n"
        "\n"
        "A\tsrc/app.py\n"
        "A\tsrc/old.py\n"
    )

    commits = list(parse_log(output.splitlines()))

    assert [commit.sha for commit in commits] == ["bbb", "aaa"]
    assert commits[0].parents == ("aaa",)
    assert commits[0].time.year == 2023
    assert commits[0].changes == [
        Change("M", "src/app.py", "src/app.py"),
        Change("R", "src/old.py", "src/new.py"),
    ]
    assert commits[1].is_root
    assert [change.status for change in commits[1].changes] == ["A", "A"]


def test_parse_log_flags_merges() -> None:
    output = "\0ccc\taaa bbb\t2022-01-01T00:00:00+00:00\n"

    (commit,) = parse_log(output.splitlines())

    assert commit.is_merge
    assert not commit.changes


def test_parse_log_rejects_garbage() -> None:
    with pytest.raises(GitError):
        list(parse_log(["\0abc\t\tnot-a-date"]))
    with pytest.raises(GitError):
        list(parse_log(["\0abc\t\t2022-01-01T00:00:00+00:00", "X"]))


def test_unquote_path_handles_c_style_escapes() -> None:
    assert unquote_path("plain/path.py") == "plain/path.py"
    assert unquote_path('"with\\ttab.py"') == "with\ttab.py"
    assert unquote_path('"quote\\"d.py"') == 'quote"d.py'
    assert unquote_path('"caf\\303\\251.py"') == "café.py"


def test_rename_continuity() -> None:
    commits = [
        _commit("k", 2023, _renamed("old.ext", "new.ext")),
        _commit("j", 2019, _added("old.ext"), parents=()),
    ]

    history = walk_history(commits, ["new.ext"])

    assert history.get("new.ext") == YearRange(added=2019, last_modified=2023)
    assert str(history.get("new.ext")) == "2019-2023"
    assert history.unknown == []


def test_most_recent_touch_wins() -> None:
    commits = [
        _commit("c3", 2023, _modified("a.py")),
        _commit("c2", 2021, _modified("a.py")),
        _commit("c1", 2018, _added("a.py"), parents=()),
    ]

    history = walk_history(commits, ["a.py"])

    assert str(history.get("a.py")) == "2018-2023"


def test_root_commit_fallback_single_year() -> None:
    commits = [
        _commit("c2", 2022, _modified("other.py")),
        _commit("c1", 2020, _added("a.py"), _added("other.py"), parents=()),
    ]

    history = walk_history(commits, ["a.py", "other.py"])

    assert str(history.get("a.py")) == "2020"
    assert str(history.get("other.py")) == "2020-2022"


def test_file_never_added_uses_its_oldest_change() -> None:
    # e.g. a file introduced by a merge commit, which the walk skips
    commits = [
        _commit("c3", 2022, _modified("a.py")),
        _commit("c2", 2019, _modified("a.py")),
        _commit("c1", 2017, _added("other.py"), parents=()),
    ]

    history = walk_history(commits, ["a.py", "other.py"])

    assert history.get("a.py") == YearRange(added=2019, last_modified=2022)
    assert str(history.get("other.py")) == "2017"


def test_walk_continues_past_unrelated_root() -> None:
    commits = [
        _commit("m", 2021, parents=("c3", "r2")),
        _commit("c3", 2020, _modified("a.py")),
        _commit("r2", 2018, _added("b.py"), parents=()),
        _commit("r1", 2015, _added("a.py"), parents=()),
    ]

    history = walk_history(commits, ["a.py", "b.py"])

    assert history.get("a.py") == YearRange(added=2015, last_modified=2020)
    assert str(history.get("b.py")) == "2018"
    assert history.commits_visited == 3


def test_merge_commits_are_skipped() -> None:
    commits = [
        _commit("m", 2024, _modified("a.py"), parents=("x", "y")),
        _commit("c1", 2020, _added("a.py"), parents=()),
    ]

    history = walk_history(commits, ["a.py"])

    assert str(history.get("a.py")) == "2020"
    assert history.commits_visited == 1


def test_unmatched_rename_is_skipped() -> None:
    commits = [
        _commit("c2", 2022, _renamed("docs/x.py", "docs/y.py"), _modified("a.py")),
        _commit("c1", 2020, _added("a.py"), _added("docs/x.py"), parents=()),
    ]

    history = walk_history(commits, ["a.py"])

    assert str(history.get("a.py")) == "2020-2022"


def test_swapped_names_in_one_commit_keep_their_history() -> None:
    commits = [
        _commit("c3", 2023, _renamed("a.py", "b.py"), _renamed("b.py", "a.py")),
        _commit("c2", 2021, _added("b.py")),
        _commit("c1", 2019, _added("a.py"), parents=()),
    ]

    history = walk_history(commits, ["a.py", "b.py"])

    # b.py at the tip used to be a.py and the other way round.
    assert history.get("b.py") == YearRange(added=2019, last_modified=2023)
    assert history.get("a.py") == YearRange(added=2021, last_modified=2023)


def test_copy_of_tracked_file_shares_source_history() -> None:
    commits = [
        _commit("c3", 2023, _modified("src.py")),
        _commit("c2", 2021, Change("C", "src.py", "copy.py")),
        _commit("c1", 2018, _added("src.py"), parents=()),
    ]

    history = walk_history(commits, ["src.py", "copy.py"])

    assert history.get("src.py") == YearRange(added=2018, last_modified=2023)
    assert history.get("copy.py") == YearRange(added=2018, last_modified=2021)


def test_repeated_renames_follow_every_step() -> None:
    commits = [
        _commit("c4", 2024, _renamed("b.py", "c.py")),
        _commit("c3", 2024, _renamed("a.py", "b.py")),
        _commit("c2", 2022, _modified("a.py")),
        _commit("c1", 2016, _added("a.py"), parents=()),
    ]

    history = walk_history(commits, ["c.py"])

    assert history.get("c.py") == YearRange(added=2016, last_modified=2024)


def test_untouched_candidates_are_reported_as_unknown() -> None:
    commits = [_commit("c1", 2020, _added("a.py"), parents=())]

    history = walk_history(commits, ["a.py", "ghost.py"])

    assert history.get("ghost.py") is None
    assert history.unknown == ["ghost.py"]


def test_walk_stops_once_everything_is_resolved() -> None:
    def commits() -> Iterator[Commit]:
        yield _commit("c2", 2021, _added("a.py"))
        raise AssertionError("walk should stop after the last file is resolved")

    history = walk_history(commits(), ["a.py"])

    assert str(history.get("a.py")) == "2021"


def test_resolver_rejects_invalid_similarity() -> None:
    with pytest.raises(ValueError):
        HistoryResolver(similarity=101)


def test_resolver_streams_single_log_with_threshold(tmp_path: Path) -> None:
    calls: List[List[str]] = []
    finished: List[bool] = []

    def runner(args, cwd, capture_output=False):  # type: ignore[no-untyped-def]
        return f"{tmp_path}\n"

    def streamer(args, cwd):  # type: ignore[no-untyped-def]
        calls.append(list(args))
        try:
            yield "\0bbb\taaa\t2021-05-05T00:00:00+00:00\n"
            yield "A\tmain.py\n"
            yield "\0aaa\t\t2019-05-05T00:00:00+00:00\n"
            raise AssertionError("git log should not be read past the last needed commit")
        finally:
            finished.append(True)

    repository = GitRepository(tmp_path, runner=runner, streamer=streamer)
    history = HistoryResolver(similarity=70).resolve(repository, "HEAD", ["main.py"])

    assert str(history.get("main.py")) == "2021"
    assert finished == [True]
    (log_call,) = calls
    assert log_call[:4] == ["git", "-c", "core.quotePath=false", "log"]
    assert "--find-renames=70%" in log_call
    assert "--find-copies=70%" in log_call
    assert log_call[-2:] == ["HEAD", "--"]


def test_resolver_follows_renames_in_real_repository(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"old.py": "print('hello world')\n" * 5, "keep.py": "x = 1\n"})
    repo_builder.commit("add files", date="2019-04-01 10:00:00 +0000")
    repo_builder.write({"keep.py": "x = 2\n"})
    repo_builder.commit("modify keep", date="2021-04-01 10:00:00 +0000")
    repo_builder.rename("old.py", "pkg/new.py")
    repo_builder.commit("move module", date="2023-04-01 10:00:00 +0000")

    repository = GitRepository(repo_builder.path())
    history = HistoryResolver().resolve(repository, "HEAD", ["pkg/new.py", "keep.py"])

    assert str(history.get("pkg/new.py")) == "2019-2023"
    assert str(history.get("keep.py")) == "2019-2021"


def test_resolver_uses_readded_commit_after_deletion(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"a.py": "one = 1\n", "b.py": "two = 2\n"})
    repo_builder.commit("initial", date="2015-01-10 10:00:00 +0000")
    repo_builder.remove("a.py")
    repo_builder.commit("drop a", date="2017-01-10 10:00:00 +0000")
    repo_builder.write({"a.py": "something completely different\n"})
    repo_builder.commit("bring a back", date="2020-01-10 10:00:00 +0000")

    repository = GitRepository(repo_builder.path())
    history = HistoryResolver().resolve(repository, "HEAD", ["a.py", "b.py"])

    assert str(history.get("a.py")) == "2020"
    assert str(history.get("b.py")) == "2015"


def test_resolver_keeps_years_across_unrelated_histories(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"a.py": "alpha = 1\n"})
    repo_builder.commit("add a", date="2015-03-01 10:00:00 +0000")
    main_branch = repo_builder.git("rev-parse", "--abbrev-ref", "HEAD").strip()
    repo_builder.git("checkout", "-q", "--orphan", "imported")
    repo_builder.git("rm", "-rfq", ".")
    repo_builder.write({"b.py": "beta = 2\n"})
    repo_builder.commit("import b", date="2018-03-01 10:00:00 +0000")
    repo_builder.git("checkout", "-q", main_branch)
    repo_builder.write({"a.py": "alpha = 2\n"})
    repo_builder.commit("modify a", date="2020-03-01 10:00:00 +0000")
    repo_builder.git(
        "merge",
        "-q",
        "--no-edit",
        "--allow-unrelated-histories",
        "imported",
        date="2021-03-01 10:00:00 +0000",
    )

    repository = GitRepository(repo_builder.path())
    history = HistoryResolver().resolve(repository, "HEAD", ["a.py", "b.py"])

    assert str(history.get("a.py")) == "2015-2020"
    assert str(history.get("b.py")) == "2018"
    assert history.unknown == []
