import os
import sys
import logging
from pathlib import Path
from dataclasses import dataclass
from typing import Callable, List, Optional

from yashell.local.config import effective_settings as config
from yashell.local.errors import PathUnavailable
from yashell.local import paths

log = logging.getLogger(__name__)

SCRIPT = "script"
NATIVE = "native"
BUNDLE_STRATEGIES = (SCRIPT, NATIVE)


@dataclass(frozen=True)
class ResolvedPath:
    """Location of the sidecar entry point and how it has to be launched."""
    path: Path
    interpreter: Optional[str] = None

    @property
    def requires_interpreter(self) -> bool:
        return self.interpreter is not None

    def command(self) -> List[str]:
        """Returns the argv used to launch the sidecar."""
        if self.interpreter:
            return [self.interpreter, str(self.path)]
        return [str(self.path)]


def get_executable_path(base_path: Path, platform: Optional[str] = None) -> Path:
    """
    Returns the platform-specific full path for an executable.

    It appends ".exe" on Windows systems.

    :param base_path: The base path of the executable (e.g., '.../bin/index-x86_64-pc-windows-msvc').
    :param platform: A sys.platform style identifier; defaults to the current platform.
    :return pathlib.Path: The full, platform-aware Path object for the executable.
    """
    platform = platform or sys.platform
    return base_path.with_name(base_path.name + ".exe") if platform == "win32" else base_path


def native_binary_path(resource_dir: Path, platform: str) -> Path:
    """
    Returns the bundled native sidecar for a platform: `<resources>/bin/index-<triple>`.

    :raises PathUnavailable: If no binary is built for the platform.
    """
    triple = config.SIDECAR_NATIVE_TRIPLES.get(platform)
    if triple is None:
        raise PathUnavailable(f"No bundled {config.SIDECAR_NAME} binary for platform '{platform}'")
    base = resource_dir / config.SIDECAR_BIN_DIR_NAME / f"{config.SIDECAR_BINARY_STEM}-{triple}"
    return get_executable_path(base, platform)


def platform_fallback_path(platform: str) -> Optional[Path]:
    """
    Returns where OS packages extract the sidecar script, if the platform has such a place.

    linux:  /usr/lib/<product>/<sidecar-dir>/<entry>
    darwin: /Applications/<product>.app/Contents/Resources/<sidecar-dir>/<entry>
    win32:  %LOCALAPPDATA%/<product>/<sidecar-dir>/<entry>
    """
    product = config.PRODUCT_NAME
    if platform.startswith("linux"):
        base = Path("/usr/lib") / product
    elif platform == "darwin":
        base = Path("/Applications") / f"{product}.app" / "Contents" / "Resources"
    elif platform == "win32":
        local_appdata = os.getenv("LOCALAPPDATA")
        if not local_appdata:
            return None
        base = Path(local_appdata) / product
    else:
        return None
    return base / config.SIDECAR_DIR_NAME / config.SIDECAR_ENTRY_FILE


def resolve(
    build_mode: str,
    platform: str,
    resource_dir: Optional[Path],
    app_root_guess: Path,
    strategy: Optional[str] = None,
) -> ResolvedPath:
    """
    Resolves the sidecar entry point for a build mode and platform.

    Development builds always run `<parent of app_root_guess>/<sidecar-dir>/<entry>`
    through the interpreter. Packaged builds follow the build-time bundle
    strategy: 'script' tries the resource dir, then the platform fallback,
    then returns the resource dir candidate unchecked; 'native' returns the
    platform-suffixed binary under `<resources>/bin`, run directly.

    :param build_mode: 'development' or 'packaged'.
    :param platform: A sys.platform style identifier.
    :param resource_dir: The bundled resources directory (unused in development).
    :param app_root_guess: Usually the current working directory.
    :param strategy: 'script' or 'native'; defaults to the configured strategy.
    :return ResolvedPath: The location and its interpreter requirement.
    :raises PathUnavailable: If a required directory is missing or the configuration is invalid.
    """
    if build_mode == paths.DEVELOPMENT:
        project_root = app_root_guess.parent
        entry = project_root / config.SIDECAR_DIR_NAME / config.SIDECAR_ENTRY_FILE
        return ResolvedPath(path=entry, interpreter=config.SIDECAR_INTERPRETER)

    if build_mode != paths.PACKAGED:
        raise PathUnavailable(f"Unknown build mode '{build_mode}'")
    if resource_dir is None:
        raise PathUnavailable("Failed to get resource directory: none was provided")

    strategy = strategy or config.SIDECAR_BUNDLE_STRATEGY
    if strategy == NATIVE:
        return ResolvedPath(path=native_binary_path(resource_dir, platform))
    if strategy != SCRIPT:
        raise PathUnavailable(
            f"Unknown bundle strategy '{strategy}'. Expected one of: {', '.join(BUNDLE_STRATEGIES)}"
        )

    bundled = resource_dir / config.SIDECAR_DIR_NAME / config.SIDECAR_ENTRY_FILE
    if bundled.exists():
        return ResolvedPath(path=bundled, interpreter=config.SIDECAR_INTERPRETER)

    fallback = platform_fallback_path(platform)
    if fallback is not None and fallback.exists():
        log.debug(f"Sidecar not found in resources. Using platform fallback '{fallback}'.")
        return ResolvedPath(path=fallback, interpreter=config.SIDECAR_INTERPRETER)

    log.warning(
        f"{config.SIDECAR_NAME} entry point not found in '{bundled.parent}'"
        f"{f' or {fallback.parent}' if fallback else ''}. Trying '{bundled}' anyway."
    )
    return ResolvedPath(path=bundled, interpreter=config.SIDECAR_INTERPRETER)


def resolve_for_host(
    get_build_mode: Callable[[], str] = paths.get_build_mode,
    get_resource_dir: Callable[[], Path] = paths.get_resource_dir,
    get_working_dir: Callable[[], Path] = paths.get_working_dir,
    platform: Optional[str] = None,
) -> ResolvedPath:
    """
    Performs the host directory lookups and resolves the sidecar location.

    The resource directory is only looked up for packaged builds.

    :raises PathUnavailable: If any host directory lookup fails.
    """
    build_mode = get_build_mode()
    resource_dir = get_resource_dir() if build_mode == paths.PACKAGED else None
    return resolve(
        build_mode,
        platform or sys.platform,
        resource_dir,
        get_working_dir(),
    )
