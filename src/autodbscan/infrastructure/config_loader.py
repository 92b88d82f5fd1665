"""
Configuration loader module.

Handles loading and validation of the optional input files:
- discovery settings (JSON): timeouts and default ports
- computer lists (JSON array or one host per line)
- credential files (JSON with username/password)
"""

import json
import logging
from pathlib import Path
from typing import List

from pydantic import ValidationError

from autodbscan.domain.config import Credential, DiscoverySettings
from autodbscan.domain.errors import SettingsError


logger = logging.getLogger(__name__)


class ConfigLoader:
    """
    Load and validate discovery input files.

    Relative paths are resolved against ``base_dir``.
    """

    def __init__(self, base_dir: str | Path = "."):
        self.base_dir = Path(base_dir)
        logger.debug("ConfigLoader initialized with directory: %s", self.base_dir)

    def _resolve(self, path: str | Path) -> Path:
        path = Path(path)
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    def _read_text(self, filepath: Path) -> str:
        """
        Read a configuration file with clear error messages.

        Raises:
            SettingsError: If the file is missing, unreadable or empty
        """
        if not filepath.exists():
            raise SettingsError(
                f"Configuration file not found: {filepath}\n"
                f"Hint: Check the path or omit the option to use defaults."
            )

        try:
            content = filepath.read_text(encoding="utf-8-sig")
        except PermissionError as e:
            raise SettingsError(
                f"Cannot read config file (permission denied): {filepath}\n"
                f"Hint: Check file permissions or if another process has it locked."
            ) from e

        if not content.strip():
            raise SettingsError(
                f"Configuration file is empty: {filepath}\n"
                f"Hint: Add valid content or omit the option."
            )
        return content

    def _load_json_file(self, filepath: Path):
        content = self._read_text(filepath)
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise SettingsError(
                f"Invalid JSON in config file: {filepath}\n"
                f"Error at line {e.lineno}, column {e.colno}: {e.msg}\n"
                f"Hint: Validate JSON syntax. Note: .json files cannot have comments."
            ) from e

    def load_settings(self, path: str | Path | None = None) -> DiscoverySettings:
        """
        Load discovery settings.

        Args:
            path: Settings file; None returns the defaults

        Returns:
            DiscoverySettings object

        Raises:
            SettingsError: If the file is missing or fails validation
        """
        if path is None:
            return DiscoverySettings()

        filepath = self._resolve(path)
        logger.info("Loading discovery settings from: %s", filepath)
        data = self._load_json_file(filepath)
        if not isinstance(data, dict):
            raise SettingsError(f"Settings file must contain a JSON object: {filepath}")

        try:
            return DiscoverySettings.model_validate(data)
        except ValidationError as e:
            raise SettingsError(f"Invalid discovery settings in {filepath}:\n{e}") from e

    def load_computer_list(self, path: str | Path) -> List[str]:
        """
        Load target hosts.

        Accepts a JSON array of strings or plain text with one host per line.
        Blank lines and ``#`` comments are ignored; duplicates keep first position.
        """
        filepath = self._resolve(path)
        content = self._read_text(filepath)

        if content.lstrip().startswith("["):
            try:
                entries = json.loads(content)
            except json.JSONDecodeError as e:
                raise SettingsError(f"Invalid JSON host list {filepath}: {e.msg}") from e
            if not all(isinstance(item, str) for item in entries):
                raise SettingsError(f"Host list must contain only strings: {filepath}")
        else:
            entries = [line.split("#", 1)[0] for line in content.splitlines()]

        hosts: dict[str, None] = {}
        for entry in entries:
            entry = entry.strip()
            if entry:
                hosts.setdefault(entry)

        logger.info("Loaded %d hosts from %s", len(hosts), filepath)
        return list(hosts)

    def load_credential_file(self, path: str | Path) -> Credential:
        """
        Load a credential from a JSON file with 'username' and 'password' keys.

        Raises:
            SettingsError: If the file is missing or incomplete
        """
        filepath = self._resolve(path)
        logger.debug("Loading credentials from: %s", filepath)
        data = self._load_json_file(filepath)
        if not isinstance(data, dict):
            raise SettingsError(f"Credential file must contain a JSON object: {filepath}")

        try:
            return Credential(username=data.get("username") or "", password=data.get("password") or "")
        except ValidationError as e:
            raise SettingsError(f"Invalid credential file {filepath}: username is required") from e
