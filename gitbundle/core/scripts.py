"""Companion script generators.

Each artifact ships with a small bash script next to it. The artifact path is
baked into the script at generation time, so moving the artifact invalidates
its script.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import Path

from ..utils.fs import atomic_write


BUNDLE_SUFFIX = ".bundle"
VERIFY_SUFFIX = "_verify.sh"
DEPLOY_SUFFIX = "_deploy.sh"
DEPLOY_BRANCH = "master"


@dataclass(frozen=True)
class VerifyScriptParams:
    bundle_path: Path
    version: str
    object_format: str = "sha1"


@dataclass(frozen=True)
class DeployScriptParams:
    bundle_path: Path
    base_version: str
    update_id: str
    branch: str = DEPLOY_BRANCH


def _script_path(bundle_path: Path, suffix: str) -> Path:
    name = bundle_path.name
    if name.endswith(BUNDLE_SUFFIX):
        name = name[: -len(BUNDLE_SUFFIX)]
    return bundle_path.with_name(name + suffix)


def verify_script_path(bundle_path: Path) -> Path:
    return _script_path(bundle_path, VERIFY_SUFFIX)


def deploy_script_path(bundle_path: Path) -> Path:
    return _script_path(bundle_path, DEPLOY_SUFFIX)


def _init_command(object_format: str) -> str:
    # git before 2.29 has no --object-format; sha1 is its only format.
    if object_format == "sha1":
        return "git init -q"
    return f"git init -q --object-format={shlex.quote(object_format)}"


def render_verify_script(params: VerifyScriptParams) -> str:
    """Render the verification script for a baseline bundle.

    The check runs in a throw-away repository so the script works from any
    directory; unbundling makes git index the pack, which catches a
    truncated or corrupted artifact that `git bundle verify` alone accepts.
    The scratch repository uses the bundle's object format, since git only
    indexes a pack into a repository of the same hash algorithm.
    """
    bundle = shlex.quote(str(params.bundle_path))
    init = _init_command(params.object_format)
    return f"""#!/bin/bash
# Verification script for baseline bundle {params.version}

BUNDLE_FILE={bundle}

echo "Verifying bundle: $BUNDLE_FILE"
if [ ! -f "$BUNDLE_FILE" ]; then
    echo "Bundle verification failed: file not found"
    exit 1
fi

SCRATCH_DIR="$(mktemp -d)" || exit 1
trap 'rm -rf "$SCRATCH_DIR"' EXIT
{init} "$SCRATCH_DIR" || exit 1

if git -C "$SCRATCH_DIR" bundle verify "$BUNDLE_FILE" \\
    && git -C "$SCRATCH_DIR" bundle unbundle "$BUNDLE_FILE" > /dev/null; then
    echo "Bundle verification successful"
else
    echo "Bundle verification failed"
    exit 1
fi
"""


def render_deploy_script(params: DeployScriptParams) -> str:
    """Render the deployment script for an update bundle.

    The destination must already hold the baseline history the update was
    cut against; git refuses the fetch otherwise.
    """
    bundle = shlex.quote(str(params.bundle_path))
    branch = shlex.quote(params.branch)
    return f"""#!/bin/bash
# Deployment script for update {params.update_id} (baseline {params.base_version})

BUNDLE_FILE={bundle}
BRANCH={branch}

DEPLOY_DIR="$1"
if [ -z "$DEPLOY_DIR" ]; then
    echo "Usage: $0 <deployment_directory>"
    exit 1
fi

set -e
mkdir -p "$DEPLOY_DIR"
cd "$DEPLOY_DIR"
if [ ! -d .git ]; then
    git init -q
fi
git fetch -q --update-head-ok "$BUNDLE_FILE" "HEAD:refs/heads/$BRANCH"
git checkout -q -f "$BRANCH"
echo "Deployed $BUNDLE_FILE to $DEPLOY_DIR ($BRANCH)"
"""


def write_script(path: Path, content: str) -> Path:
    """Write a generated script and make it executable."""
    return atomic_write(path, content, mode="w", executable=True)


def write_verify_script(params: VerifyScriptParams) -> Path:
    return write_script(verify_script_path(params.bundle_path), render_verify_script(params))


def write_deploy_script(params: DeployScriptParams) -> Path:
    return write_script(deploy_script_path(params.bundle_path), render_deploy_script(params))
