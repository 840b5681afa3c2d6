from __future__ import annotations

import sys
from pathlib import Path

import pytest

import yashell.settings as default_settings
from yashell.local import paths
from yashell.local.errors import PathUnavailable


def test_explicit_build_mode_wins(monkeypatch):
    monkeypatch.setattr(sys, "frozen", True, raising=False)

    assert paths.get_build_mode("development") == paths.DEVELOPMENT


@pytest.mark.parametrize(("frozen", "expected"), [(True, paths.PACKAGED), (False, paths.DEVELOPMENT)])
def test_build_mode_follows_frozen_flag(monkeypatch, frozen, expected):
    monkeypatch.setattr(sys, "frozen", frozen, raising=False)

    assert paths.get_build_mode("") == expected
    assert paths.get_build_mode("staging") == expected


def test_app_data_dir_override(tmp_path):
    assert paths.get_app_data_dir(override=str(tmp_path / "data")) == (tmp_path / "data").resolve()


def test_app_data_dir_platform_defaults(monkeypatch, tmp_path):
    monkeypatch.setattr(paths.Path, "home", classmethod(lambda cls: tmp_path))
    monkeypatch.delenv("XDG_DATA_HOME", raising=False)
    monkeypatch.delenv("APPDATA", raising=False)
    identifier = default_settings.APP_IDENTIFIER

    assert paths.get_app_data_dir(override="", platform="linux") == tmp_path / ".local" / "share" / identifier
    assert paths.get_app_data_dir(override="", platform="darwin") == (
        tmp_path / "Library" / "Application Support" / identifier
    )
    assert paths.get_app_data_dir(override="", platform="win32") == tmp_path / "AppData" / "Roaming" / identifier

    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))
    assert paths.get_app_data_dir(override="", platform="linux") == tmp_path / "xdg" / identifier


def test_app_data_dir_without_home(monkeypatch):
    def no_home(cls):
        raise RuntimeError("Could not determine home directory.")

    monkeypatch.setattr(paths.Path, "home", classmethod(no_home))

    with pytest.raises(PathUnavailable, match="app data directory"):
        paths.get_app_data_dir(override="", platform="linux")


def test_log_dir_lives_under_data_dir(tmp_path):
    assert paths.get_app_log_dir(tmp_path) == tmp_path / "logs"


def test_resource_dir_in_source_checkout(monkeypatch):
    monkeypatch.setattr(sys, "frozen", False, raising=False)

    assert paths.get_resource_dir(override="") == default_settings.BASE_DIR


def test_resource_dir_prefers_bundle_extraction_dir(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "_MEIPASS", str(tmp_path), raising=False)

    assert paths.get_resource_dir(override="") == Path(tmp_path)


def test_resource_dir_next_to_frozen_executable(monkeypatch, tmp_path):
    executable = tmp_path / "yaLLMa3" / "yaLLMa3.exe"
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.delattr(sys, "_MEIPASS", raising=False)
    monkeypatch.setattr(sys, "executable", str(executable))

    assert paths.get_resource_dir(override="") == executable.resolve().parent


def test_resource_dir_without_executable(monkeypatch):
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.delattr(sys, "_MEIPASS", raising=False)
    monkeypatch.setattr(sys, "executable", "")

    with pytest.raises(PathUnavailable, match="resource directory"):
        paths.get_resource_dir(override="")
