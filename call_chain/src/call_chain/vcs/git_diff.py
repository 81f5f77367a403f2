"""
Changed files between two git revisions.

Results are returned to the caller; nothing is kept on the provider between
calls.
"""
import logging
import os
import re
from dataclasses import dataclass, field

from git import GitCommandError, Repo
from git.exc import BadName, InvalidGitRepositoryError, NoSuchPathError

from call_chain.src.call_chain.errors import ChainBuildError, ErrorCode

logger = logging.getLogger(__name__)

# "@@ -12,3 +14,5 @@" -> new side starts at 14 and spans 5 lines
HUNK_HEADER = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,(\d+))? @@", re.MULTILINE)

GIT_ERRORS = (GitCommandError, InvalidGitRepositoryError, NoSuchPathError, BadName, ValueError)


@dataclass
class ChangedFile:
    path: str  # repository-relative, new path unless deleted
    change_type: str  # "A"dded, "M"odified, "D"eleted, "R"enamed
    changed_lines: set[int] = field(default_factory=set)  # 1-based, new side

    @property
    def is_java_source(self) -> bool:
        return self.path.endswith(".java")


def parse_changed_lines(patch: str) -> set[int]:
    """New-side line numbers touched by a zero-context patch."""
    lines = set()
    for m in HUNK_HEADER.finditer(patch):
        start = int(m.group(1))
        count = int(m.group(2)) if m.group(2) is not None else 1
        if count == 0:
            # Pure deletion after new line `start`
            lines.add(max(start, 1))
        else:
            lines.update(range(start, start + count))
    return lines


class GitDiffProvider:
    """Reads changes between two revisions of a local git repository."""

    def changed_files(self, repo_path: str, base_rev: str, head_rev: str) -> list[ChangedFile]:
        try:
            repo = Repo(repo_path)
            base = repo.commit(base_rev)
            head = repo.commit(head_rev)
            diffs = base.diff(head, create_patch=True, unified=0)
        except GIT_ERRORS as e:
            logger.error(f"Failed to diff {base_rev}..{head_rev} in {repo_path}: {e}")
            raise ChainBuildError(ErrorCode.VERSION_CONTROL_FAIL, str(e)) from e

        changed = []
        for d in diffs:
            patch = d.diff.decode("utf-8", errors="replace") if isinstance(d.diff, bytes) else (d.diff or "")
            if d.new_file:
                change_type = "A"
            elif d.deleted_file:
                change_type = "D"
            elif d.renamed_file:
                change_type = "R"
            else:
                change_type = "M"
            changed.append(ChangedFile(d.b_path or d.a_path, change_type, parse_changed_lines(patch)))
        logger.info(f"{len(changed)} files changed between {base_rev} and {head_rev}")
        return changed

    def read_file(self, repo_path: str, revision: str, path: str) -> str:
        """Contents of path as of revision."""
        try:
            return Repo(repo_path).git.show(f"{revision}:{path}")
        except GIT_ERRORS as e:
            logger.error(f"Failed to read {path} at {revision}: {e}")
            raise ChainBuildError(ErrorCode.VERSION_CONTROL_FAIL, str(e)) from e

    def checkout(self, repo_url: str, revision: str, dest_dir: str) -> str:
        """Materializes revision of repo_url into dest_dir and returns dest_dir."""
        try:
            if os.path.exists(dest_dir):
                repo = Repo(dest_dir)
                repo.remotes.origin.fetch()
            else:
                logger.info(f"Cloning repository: {repo_url} to {dest_dir}")
                repo = Repo.clone_from(repo_url, dest_dir)
            repo.git.checkout(revision)
        except GIT_ERRORS as e:
            logger.error(f"Failed to check out {revision} of {repo_url}: {e}")
            raise ChainBuildError(ErrorCode.VERSION_CONTROL_FAIL, str(e)) from e
        return dest_dir
