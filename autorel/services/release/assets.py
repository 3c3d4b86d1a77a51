"""Release artifacts: a source archive and, optionally, a platform binary archive."""

from __future__ import annotations

import tarfile
from pathlib import Path

from autorel.core.config import Config
from autorel.core.result import Err, Ok, Result
from autorel.git.repository import Repository
from autorel.output.console import ConsoleProtocol, Style
from autorel.platform.detection import detect_platform
from autorel.services.release.errors import ReleaseError
from autorel.services.release.model import PublishedAsset


def asset_basename(*, project: str, tag: str) -> str:
    return f"{project}-{tag}"


def release_asset_names(*, config: Config, tag: str) -> tuple[str, ...]:
    """Upload names of every asset a complete release of ``tag`` carries."""
    base = asset_basename(project=config.project.name, tag=tag)
    names = [f"{base}-source.tar.gz"]
    if config.assets.binary_dir is not None:
        platform = config.assets.platform or str(detect_platform())
        names.append(f"{base}-{platform}.tar.gz")
    return tuple(names)


def build_release_assets(
    *,
    repo: Repository,
    config: Config,
    tag: str,
    target: str,
    console: ConsoleProtocol,
    dry_run: bool,
) -> Result[tuple[PublishedAsset, ...], ReleaseError]:
    """Build archives of ``target`` into the artifacts dir; rebuilding overwrites previous files."""
    out_dir = repo.path / config.project.artifacts_dir
    base = asset_basename(project=config.project.name, tag=tag)
    names = release_asset_names(config=config, tag=tag)
    assets: list[PublishedAsset] = []

    source = out_dir / names[0]
    console.print(f"git archive --prefix={base}/ {target[:12]} -> {source.name}", Style.DIM)
    if not dry_run:
        archived = repo.archive(ref=target, prefix=f"{base}/", output=source)
        if isinstance(archived, Err):
            return Err(
                ReleaseError(
                    kind="asset_failed",
                    message="failed to build source archive",
                    hint=archived.error.message,
                )
            )
    assets.append(PublishedAsset(path=source, name=source.name))

    binary_dir = config.assets.binary_dir
    if binary_dir is not None:
        binary = out_dir / names[1]
        console.print(f"tar -czf {binary.name} -C {binary_dir} .", Style.DIM)
        if not dry_run:
            built = _tar_directory(repo.path / binary_dir, binary)
            if isinstance(built, Err):
                return built
        assets.append(PublishedAsset(path=binary, name=binary.name))

    return Ok(tuple(assets))


def _tar_directory(src: Path, dest: Path) -> Result[None, ReleaseError]:
    if not src.is_dir():
        return Err(
            ReleaseError(
                kind="asset_failed",
                message=f"binary directory not found: {src}",
                hint="Check [assets].binary_dir and that the build stage produced it.",
            )
        )
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with tarfile.open(dest, "w:gz") as tar:
            for child in sorted(src.iterdir()):
                tar.add(child, arcname=child.name)
    except (OSError, tarfile.TarError) as e:
        return Err(
            ReleaseError(
                kind="asset_failed",
                message=f"failed to build binary archive: {e}",
                hint=str(dest),
            )
        )
    return Ok(None)
