"""gitbundle controller - main orchestrator.

Runs the setup, baseline, update and rollback operations against the
configured repository and bundle directory. Failures come back as
OperationResult values; nothing here exits the process.
"""

from __future__ import annotations

import dataclasses
import re
from datetime import datetime
from pathlib import Path
from typing import Callable

from ..config import BundleConfig, ConfigLoader
from ..utils.fs import ensure_dir
from ..utils.log import attach_log_file, get_logger
from . import git
from .bundle_store import BundleInfo, BundleStore
from .errors import BundleError, ErrorKind, OperationResult
from .scripts import DeployScriptParams, VerifyScriptParams, write_deploy_script, write_verify_script


logger = get_logger(__name__)

VERSION_PATTERN = re.compile(r"[0-9]+\.[0-9]+\.[0-9]+")
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def validate_version(version: str | None) -> str:
    """Return version if it is MAJOR.MINOR.PATCH, raise a validation error otherwise."""
    if not version or not VERSION_PATTERN.fullmatch(version):
        raise BundleError(
            ErrorKind.VALIDATION,
            "Invalid version format. Use semantic versioning (e.g., 1.0.0)",
        )
    return version


def baseline_tag(version: str) -> str:
    return f"baseline-{version}"


class BundleController:
    """Main controller for gitbundle operations."""

    def __init__(
        self,
        config: BundleConfig,
        loader: ConfigLoader | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        """Initialize controller.

        Args:
            config: Settings for this invocation
            loader: Where `setup` persists the settings
            now: Clock used for update ids and backup branch names
        """
        self.config = config
        self.loader = loader or ConfigLoader()
        self._now = now

    def _timestamp(self) -> str:
        return self._now().strftime(TIMESTAMP_FORMAT)

    def _repo(self) -> Path:
        repo = self.config.repo_path
        if repo is None or not repo.is_dir():
            raise BundleError(ErrorKind.CONFIG, "Failed to navigate to repo")
        return repo

    def _bundle_dir(self) -> Path:
        bundle_dir = self.config.bundle_path
        if bundle_dir is None:
            raise BundleError(ErrorKind.CONFIG, "BUNDLE_DIR is not configured")
        if not bundle_dir.is_dir():
            raise BundleError(
                ErrorKind.CONFIG,
                f"Bundle directory {bundle_dir} does not exist (run setup first)",
            )
        return bundle_dir

    def store(self) -> BundleStore:
        return BundleStore(bundle_dir=self._bundle_dir(), repo_root=self._repo())

    def setup(
        self,
        repo_dir: str | None = None,
        bundle_dir: str | None = None,
        log_dir: str | None = None,
    ) -> OperationResult:
        """Create directories, check the repository and write the config file.

        Any argument given overrides the loaded setting and forces the
        config file to be rewritten; otherwise it is only written if absent.
        """
        overrides = {
            key: value
            for key, value in (("repo_dir", repo_dir), ("bundle_dir", bundle_dir), ("log_dir", log_dir))
            if value
        }
        if overrides:
            self.config = dataclasses.replace(self.config, **overrides)

        try:
            if not self.config.bundle_dir:
                raise BundleError(ErrorKind.CONFIG, "BUNDLE_DIR is not configured")
            if not self.config.log_dir:
                raise BundleError(ErrorKind.CONFIG, "LOG_DIR is not configured")

            ensure_dir(self.config.bundle_path)
            ensure_dir(self.config.log_path)
            attach_log_file(self.config.log_path)

            if not git.is_git_repo(self.config.repo_path):
                raise BundleError(
                    ErrorKind.CONFIG,
                    f"Directory '{self.config.repo_dir}' is not a git repository",
                )

            existed = self.loader.exists()
            if overrides or not existed:
                path = self.loader.save(self.config)
                verb = "updated" if existed else "created"
                logger.info("Configuration file %s: %s", verb, path)
        except BundleError as e:
            return OperationResult.failure(e)
        except OSError as e:
            return OperationResult(success=False, error=f"Setup failed: {e}", kind=ErrorKind.EXTERNAL)

        return OperationResult(
            success=True,
            details={"configPath": str(self.loader.config_path)},
        )

    def create_baseline(self, version: str | None) -> OperationResult:
        """Tag the repository and export a full, verified baseline bundle."""
        try:
            version = validate_version(version)
            logger.info("Creating baseline version %s...", version)

            repo = self._repo()
            store = self.store()
            tag = baseline_tag(version)

            git.create_annotated_tag(repo, tag, f"Baseline version {version}")

            bundle_file = store.baseline_path(version)
            store.ensure_absent(bundle_file)
            store.export_full(bundle_file)
            logger.info("Baseline bundle created: %s", bundle_file)

            report = store.verify(bundle_file)
            logger.info("Baseline bundle verified successfully.")

            script = write_verify_script(VerifyScriptParams(
                bundle_path=bundle_file,
                version=version,
                object_format=git.object_format(repo),
            ))
            logger.info("Verification script created: %s", script)
        except BundleError as e:
            return OperationResult.failure(e)
        except OSError as e:
            return OperationResult(success=False, error=f"Baseline failed: {e}", kind=ErrorKind.EXTERNAL)

        return OperationResult(
            success=True,
            bundle=str(bundle_file),
            script=str(script),
            tag=tag,
            details={"objects": report.object_count},
        )

    def create_update(self, base_version: str | None) -> OperationResult:
        """Export the commits made since a baseline as a verified update bundle."""
        try:
            base_version = validate_version(base_version)

            repo = self._repo()
            base = baseline_tag(base_version)
            if not git.rev_exists(repo, base):
                raise BundleError(ErrorKind.PRECONDITION, f"Baseline version {base_version} not found")

            logger.info("Creating update bundle from baseline %s...", base_version)
            store = self.store()

            update_id = self._timestamp()
            bundle_file = store.update_path(base_version, update_id)
            store.ensure_absent(bundle_file)

            commits = store.export_range(bundle_file, base)
            if commits == 0:
                logger.info("No commits since baseline %s; update bundle is empty.", base_version)
            logger.info("Update bundle created: %s", bundle_file)

            store.verify(bundle_file)
            logger.info("Update bundle verified successfully.")

            script = write_deploy_script(DeployScriptParams(
                bundle_path=bundle_file,
                base_version=base_version,
                update_id=update_id,
            ))
            logger.info("Deployment script created: %s", script)
        except BundleError as e:
            return OperationResult.failure(e)
        except OSError as e:
            return OperationResult(success=False, error=f"Update failed: {e}", kind=ErrorKind.EXTERNAL)

        return OperationResult(
            success=True,
            bundle=str(bundle_file),
            script=str(script),
            tag=base,
            details={"updateId": update_id, "commits": commits},
        )

    def rollback(self, commits: str | None = "1") -> OperationResult:
        """Revert the last N commits as one new commit, keeping a backup branch.

        The count is passed to git as given; a value git cannot use fails at
        the revert step.
        """
        count = commits or "1"
        try:
            repo = self._repo()

            logger.info("Rolling back the last %s commit(s) using git revert...", count)
            backup_branch = f"backup_{self._timestamp()}"
            git.create_branch(repo, backup_branch)
            logger.info("Backup branch created: %s", backup_branch)

            git.revert_no_commit(repo, self._commits_to_revert(repo, count))
            sha = git.commit(repo, f"Rollback: Reverted the last {count} commit(s)")
            logger.info("Rollback completed successfully. Changes are now committed.")
        except BundleError as e:
            return OperationResult.failure(e)

        return OperationResult(success=True, branch=backup_branch, commit=sha)

    @staticmethod
    def _commits_to_revert(repo: Path, count: str) -> list[str]:
        """Newest-first list of the last `count` commits on HEAD.

        `HEAD~N..HEAD` cannot name the root commit, so a count equal to the
        whole history falls back to listing every commit.
        """
        try:
            return git.list_revisions(repo, f"HEAD~{count}..HEAD")
        except git.GitError:
            if count.isdigit() and git.count_commits(repo, "HEAD") == int(count):
                return git.list_revisions(repo, "HEAD")
            raise git.GitError("Failed to revert commits", f"HEAD~{count} does not exist")

    def verify_bundle(self, bundle_file: str | None) -> OperationResult:
        """Re-verify an existing artifact against the configured repository."""
        try:
            if not bundle_file:
                raise BundleError(ErrorKind.VALIDATION, "No bundle file given")
            path = Path(bundle_file).expanduser()
            if not path.is_absolute() and not path.exists() and self.config.bundle_path:
                path = self.config.bundle_path / path

            report = BundleStore(bundle_dir=path.parent, repo_root=self._repo()).verify(path)
            logger.info(
                "Bundle verified: %s (%d objects, %d prerequisite(s))",
                report.path,
                report.object_count,
                report.prerequisites,
            )
        except BundleError as e:
            return OperationResult.failure(e)
        except OSError as e:
            return OperationResult(success=False, error=f"Verification failed: {e}", kind=ErrorKind.EXTERNAL)

        return OperationResult(
            success=True,
            bundle=str(report.path),
            details={"objects": report.object_count, "references": report.references},
        )

    def list_bundles(self) -> list[BundleInfo]:
        bundle_dir = self.config.bundle_path
        if bundle_dir is None:
            return []
        return BundleStore(bundle_dir=bundle_dir).list()
