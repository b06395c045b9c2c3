"""Changelog for one package: commits between two refs that touch its path."""

from __future__ import annotations

import re
from dataclasses import dataclass

from pkgrel.core.result import Err, Ok, Result
from pkgrel.git.repository import CommitInfo, Repository
from pkgrel.release.errors import ReleaseError
from pkgrel.services.release.model import ChangelogDocument, ChangelogEntry

_CONVENTIONAL_RE = re.compile(r"^(?P<type>[A-Za-z]+)(?:\((?P<scope>[^)]*)\))?(?P<bang>!)?:\s*(?P<desc>.+)$")

GROUP_ORDER: tuple[str, ...] = (
    "Features",
    "Bug Fixes",
    "Performance",
    "Refactor",
    "Documentation",
    "Styling",
    "Testing",
    "Miscellaneous Tasks",
    "Reverts",
    "Other",
)

_GROUP_BY_TYPE: dict[str, str] = {
    "feat": "Features",
    "fix": "Bug Fixes",
    "perf": "Performance",
    "refactor": "Refactor",
    "doc": "Documentation",
    "docs": "Documentation",
    "style": "Styling",
    "test": "Testing",
    "tests": "Testing",
    "chore": "Miscellaneous Tasks",
    "ci": "Miscellaneous Tasks",
    "build": "Miscellaneous Tasks",
    "revert": "Reverts",
}


@dataclass(frozen=True, slots=True)
class ParsedSubject:
    group: str
    scope: str | None
    description: str
    breaking: bool


def parse_subject(subject: str) -> ParsedSubject:
    if subject.startswith("Revert "):
        return ParsedSubject(group="Reverts", scope=None, description=subject, breaking=False)

    m = _CONVENTIONAL_RE.match(subject.strip())
    if m is None:
        return ParsedSubject(group="Other", scope=None, description=subject.strip(), breaking=False)

    group = _GROUP_BY_TYPE.get(m.group("type").lower(), "Other")
    if group == "Other":
        # Unknown prefix: keep the subject as written.
        return ParsedSubject(group=group, scope=None, description=subject.strip(), breaking=False)
    return ParsedSubject(
        group=group,
        scope=(m.group("scope") or "").strip() or None,
        description=m.group("desc").strip(),
        breaking=m.group("bang") is not None,
    )


def classify(subject: str) -> str:
    """Conventional-commit group for a commit subject."""
    return parse_subject(subject).group


def _entry(commit: CommitInfo) -> ChangelogEntry:
    return ChangelogEntry(
        sha=commit.sha,
        author=commit.author,
        date=commit.date,
        subject=commit.subject,
        group=classify(commit.subject),
    )


def emit_changelog(
    *,
    repo: Repository,
    package_path: str,
    old_tag: str | None,
    new_ref: str,
) -> Result[ChangelogDocument, ReleaseError]:
    """Collect commits in (old_tag, new_ref] that touch package_path, oldest first.

    Without an old tag the whole history up to new_ref is used.
    """
    rev_range = f"{old_tag}..{new_ref}" if old_tag else new_ref
    commits = repo.log(rev_range=rev_range, path=package_path)
    if isinstance(commits, Err):
        return Err(
            ReleaseError(
                kind="changelog_failure",
                message=f"cannot list commits for {package_path} in {rev_range}: {commits.error.message}",
                stage="changelog",
            )
        )

    return Ok(
        ChangelogDocument(
            package_path=package_path,
            since=old_tag,
            until=new_ref,
            entries=tuple(_entry(c) for c in commits.value),
        )
    )


def _render_line(entry: ChangelogEntry, github_repo: str | None) -> str:
    parsed = parse_subject(entry.subject)
    text = parsed.description[:1].upper() + parsed.description[1:]
    if parsed.scope:
        text = f"*({parsed.scope})* {text}"
    if parsed.breaking:
        text = f"[**breaking**] {text}"

    if github_repo:
        ref = f"[{entry.short_sha}](https://github.com/{github_repo}/commit/{entry.sha})"
    else:
        ref = entry.short_sha
    return f"- {text} ({ref})"


def render_changelog(doc: ChangelogDocument, github_repo: str | None = None) -> str:
    lines: list[str] = [f"## {doc.until}", ""]

    if not doc.entries:
        lines.append(f"No changes to `{doc.package_path}` since {doc.since or 'the first commit'}.")
        return "\n".join(lines) + "\n"

    for group in GROUP_ORDER:
        entries = [e for e in doc.entries if e.group == group]
        if not entries:
            continue
        lines.append(f"### {group}")
        lines.append("")
        lines.extend(_render_line(e, github_repo) for e in entries)
        lines.append("")

    if doc.since and github_repo:
        lines.append(f"**Full Changelog**: https://github.com/{github_repo}/compare/{doc.since}...{doc.until}")

    return "\n".join(lines).rstrip() + "\n"
