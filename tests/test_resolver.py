from __future__ import annotations

from pathlib import Path

import pytest

from yashell.local import paths
from yashell.local.config import effective_settings as config
from yashell.local.errors import PathUnavailable
from yashell.local.supervisor import resolver
from yashell.local.supervisor.resolver import (
    ResolvedPath,
    get_executable_path,
    platform_fallback_path,
    resolve,
    resolve_for_host,
)


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("// sidecar", encoding="utf-8")
    return path


def test_development_mode_uses_sibling_directory_of_working_dir(tmp_path):
    app_root = tmp_path / "desktop"

    first = resolve("development", "linux", None, app_root)
    second = resolve("development", "linux", None, app_root)

    assert first == second
    assert first.path == tmp_path / "yaLLMa3API" / "index.js"
    assert first.interpreter == config.SIDECAR_INTERPRETER
    assert first.requires_interpreter


def test_development_mode_does_not_check_existence(tmp_path):
    resolved = resolve("development", "win32", None, tmp_path / "nowhere")

    assert not resolved.path.exists()
    assert resolved.path.name == "index.js"


def test_packaged_script_prefers_resource_dir_over_platform_fallback(tmp_path, monkeypatch):
    resources = tmp_path / "resources"
    bundled = _touch(resources / "yaLLMa3API" / "index.js")
    fallback = _touch(tmp_path / "usr-lib" / "yaLLMa3API" / "index.js")
    monkeypatch.setattr(resolver, "platform_fallback_path", lambda platform: fallback)

    resolved = resolve("packaged", "linux", resources, tmp_path, strategy="script")

    assert resolved.path == bundled
    assert resolved.interpreter == config.SIDECAR_INTERPRETER


def test_packaged_script_uses_platform_fallback_when_resource_missing(tmp_path, monkeypatch):
    fallback = _touch(tmp_path / "usr-lib" / "yaLLMa3API" / "index.js")
    monkeypatch.setattr(resolver, "platform_fallback_path", lambda platform: fallback)

    resolved = resolve("packaged", "linux", tmp_path / "resources", tmp_path, strategy="script")

    assert resolved.path == fallback


def test_packaged_script_falls_back_to_unchecked_resource_path(tmp_path, monkeypatch):
    monkeypatch.setattr(resolver, "platform_fallback_path", lambda platform: tmp_path / "missing" / "index.js")
    resources = tmp_path / "resources"

    resolved = resolve("packaged", "linux", resources, tmp_path, strategy="script")

    assert resolved.path == resources / "yaLLMa3API" / "index.js"
    assert not resolved.path.exists()


@pytest.mark.parametrize(
    ("platform", "binary"),
    [
        ("linux", "index-x86_64-unknown-linux-gnu"),
        ("win32", "index-x86_64-pc-windows-msvc.exe"),
        ("darwin", "index-x86_64-apple-darwin"),
    ],
)
def test_packaged_native_returns_platform_binary_run_directly(tmp_path, platform, binary):
    resolved = resolve("packaged", platform, tmp_path, tmp_path, strategy="native")

    assert resolved.path == tmp_path / "bin" / binary
    assert resolved.interpreter is None
    assert resolved.command() == [str(tmp_path / "bin" / binary)]


def test_packaged_native_rejects_unsupported_platform(tmp_path):
    with pytest.raises(PathUnavailable, match="freebsd"):
        resolve("packaged", "freebsd13", tmp_path, tmp_path, strategy="native")


def test_unknown_bundle_strategy_is_rejected(tmp_path):
    with pytest.raises(PathUnavailable, match="bundle strategy"):
        resolve("packaged", "linux", tmp_path, tmp_path, strategy="both")


def test_packaged_mode_requires_resource_dir(tmp_path):
    with pytest.raises(PathUnavailable):
        resolve("packaged", "linux", None, tmp_path, strategy="native")


def test_resolve_for_host_skips_resource_lookup_in_development(tmp_path):
    def broken_resource_dir():
        raise PathUnavailable("no resources")

    resolved = resolve_for_host(
        get_build_mode=lambda: paths.DEVELOPMENT,
        get_resource_dir=broken_resource_dir,
        get_working_dir=lambda: tmp_path / "desktop",
        platform="linux",
    )

    assert resolved.path == tmp_path / "yaLLMa3API" / "index.js"


def test_resolve_for_host_propagates_resource_lookup_failure(tmp_path):
    def broken_resource_dir():
        raise PathUnavailable("Failed to get resource directory")

    with pytest.raises(PathUnavailable, match="resource directory"):
        resolve_for_host(
            get_build_mode=lambda: paths.PACKAGED,
            get_resource_dir=broken_resource_dir,
            get_working_dir=lambda: tmp_path,
            platform="linux",
        )


def test_platform_fallback_locations():
    assert platform_fallback_path("linux") == Path("/usr/lib/yaLLMa3/yaLLMa3API/index.js")
    assert platform_fallback_path("darwin") == Path(
        "/Applications/yaLLMa3.app/Contents/Resources/yaLLMa3API/index.js"
    )
    assert platform_fallback_path("sunos5") is None


def test_platform_fallback_on_windows_uses_local_appdata(monkeypatch, tmp_path):
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path))
    assert platform_fallback_path("win32") == tmp_path / "yaLLMa3" / "yaLLMa3API" / "index.js"

    monkeypatch.delenv("LOCALAPPDATA")
    assert platform_fallback_path("win32") is None


def test_get_executable_path_appends_exe_only_on_windows(tmp_path):
    base = tmp_path / "bin" / "index-x86_64-pc-windows-msvc"

    assert get_executable_path(base, "win32").name == "index-x86_64-pc-windows-msvc.exe"
    assert get_executable_path(base, "linux") == base


def test_resolved_path_command_with_interpreter(tmp_path):
    entry = tmp_path / "index.js"

    assert ResolvedPath(entry, "node").command() == ["node", str(entry)]
