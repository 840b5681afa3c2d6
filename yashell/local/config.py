import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional

import yashell.settings as default_settings
from yashell.local.errors import PathUnavailable
from yashell.local.paths import get_app_data_dir

log = logging.getLogger(__name__)


def _coerce(original_value: Any, value: Any) -> Any:
    """Coerces an override value to the type of the default it replaces."""
    if isinstance(original_value, bool):
        return str(value).strip().lower() in ('true', '1', 't', 'yes', 'y')
    if isinstance(original_value, Path):
        return Path(value)
    if original_value is not None and not isinstance(value, type(original_value)):
        return type(original_value)(value)
    return value


class MergedSettings:
    """
    A class that merges default settings with JSON overrides.

    This class provides a unified, attribute-based access point for all
    application configuration. It follows a clear precedence:
    1. Base values from `settings.py`.
    2. Overrides from `.env` / the environment (handled by `python-dotenv` in settings.py).
    3. Overrides from `overrides.json` for settings in `MODIFIABLE_SETTINGS`.
    """

    def __init__(self, overrides_path: Optional[Path] = None) -> None:
        """
        Initializes the settings object by loading defaults and overrides.

        :param overrides_path: Location of the overrides file. Defaults to the app data dir.
        """
        self._load_defaults()
        if overrides_path is None:
            try:
                overrides_path = get_app_data_dir() / default_settings.OVERRIDES_FILE_NAME
            except PathUnavailable as e:
                log.warning(f"Runtime overrides disabled: {e}")
        self.OVERRIDES_JSON_PATH: Optional[Path] = overrides_path
        self._load_overrides()

    def _load_defaults(self) -> None:
        """
        Loads all uppercase attributes from the settings.py module as defaults.
        """
        for key in dir(default_settings):
            if key.isupper():
                setattr(self, key, getattr(default_settings, key))

    def _load_overrides(self) -> None:
        """
        Loads and applies settings from the `overrides.json` file.

        It will only apply overrides for keys that are explicitly listed in
        the `MODIFIABLE_SETTINGS` set in `settings.py`.
        """
        if self.OVERRIDES_JSON_PATH is None or not self.OVERRIDES_JSON_PATH.exists():
            return

        try:
            with self.OVERRIDES_JSON_PATH.open('r', encoding='utf-8') as f:
                overrides = json.load(f)

            log.info(f"Loading runtime configuration overrides from {self.OVERRIDES_JSON_PATH}")
            for key, value in overrides.items():
                if not hasattr(self, key):
                    log.warning(f"Override setting '{key}' not found in default settings. Ignoring.")
                    continue
                # Only allow overriding whitelisted settings.
                if key not in self.MODIFIABLE_SETTINGS:
                    log.warning(f"Attempted to override non-modifiable setting '{key}'. Ignoring.")
                    continue
                try:
                    setattr(self, key, _coerce(getattr(self, key), value))
                except (ValueError, TypeError) as e:
                    log.warning(f"Ignoring override '{key}' = {value!r}: {e}")
                    continue
                log.debug(f"Overridden setting: {key} = {value}")
        except (json.JSONDecodeError, OSError, AttributeError) as e:
            log.error(
                f"Failed to load or parse overrides file '{self.OVERRIDES_JSON_PATH}': {e}"
            )

    def modifiable_values(self) -> Dict[str, Any]:
        """Returns the current values of every modifiable setting."""
        return {key: getattr(self, key, None) for key in sorted(self.MODIFIABLE_SETTINGS)}

    def update_setting(self, key: str, value: Any) -> tuple:
        """
        Updates one modifiable setting in memory and persists all overrides.

        :param key: The setting name.
        :param value: The new value; coerced to the type of the current value.
        :return tuple: (success, message).
        """
        if key not in self.MODIFIABLE_SETTINGS:
            message = f"Setting '{key}' is not modifiable."
            log.warning(f"Rejected config update: {message}")
            return False, message

        try:
            new_value = _coerce(getattr(self, key, None), value)
        except (ValueError, TypeError) as e:
            message = f"Could not convert value '{value}' for key '{key}'. Error: {e}"
            log.error(f"Config update failed: {message}")
            return False, message

        setattr(self, key, new_value)
        self.save_overrides(self.modifiable_values())
        message = f"Setting '{key}' updated to '{new_value}'."
        log.info(message)
        return True, message

    def save_overrides(self, overrides_to_save: Dict[str, Any]) -> None:
        """
        Saves the provided dictionary of settings to the overrides JSON file.

        The dictionary is filtered so only keys present in
        `MODIFIABLE_SETTINGS` are persisted.

        :param overrides_to_save: A dictionary of settings to persist.
        """
        filtered_overrides = {
            key: value
            for key, value in overrides_to_save.items()
            if key in self.MODIFIABLE_SETTINGS
        }

        if not filtered_overrides:
            log.warning("No modifiable settings provided to save.")
            return
        if self.OVERRIDES_JSON_PATH is None:
            log.warning("No overrides file location available. Settings were not saved.")
            return

        try:
            self.OVERRIDES_JSON_PATH.parent.mkdir(parents=True, exist_ok=True)
            with self.OVERRIDES_JSON_PATH.open('w', encoding='utf-8') as f:
                json.dump(filtered_overrides, f, indent=4, default=str)
            log.info(f"Configuration overrides saved to {self.OVERRIDES_JSON_PATH}")
        except OSError as e:
            log.error(
                f"Failed to write to overrides file '{self.OVERRIDES_JSON_PATH}': {e}"
            )


# Create a singleton instance to be imported by other modules
effective_settings = MergedSettings()
