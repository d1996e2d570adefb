from __future__ import annotations
"""Connection profiles and helper settings persistence."""
from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
from typing import Any

import keyring
from keyring.errors import KeyringError

LOGGER = logging.getLogger(__name__)

KEYCHAIN_SERVICE = "s3-bucket-helpers"
DEFAULT_PAGE_SIZE = 1000


class ProfileNotFoundError(LookupError):
    """Raised when a named connection profile is not configured."""


@dataclass
class ConnectionProfile:
    """Endpoint and credentials used to build an object store client."""

    name: str
    endpoint_url: str
    access_key: str
    secret_key: str = field(default="", repr=False)
    region_name: str = ""


@dataclass
class HelperSettings:
    page_size: int = DEFAULT_PAGE_SIZE
    default_profile: str = ""


class KeychainStore:
    """Reads and writes profile secrets in the OS keychain."""

    def __init__(self, service_name: str = KEYCHAIN_SERVICE):
        self._service_name = service_name

    def get_secret(self, profile_name: str) -> str:
        if not profile_name:
            return ""
        try:
            return keyring.get_password(self._service_name, profile_name) or ""
        except KeyringError:
            LOGGER.warning("Keychain lookup failed for profile '%s'", profile_name)
            return ""

    def set_secret(self, profile_name: str, secret_key: str) -> None:
        if not profile_name:
            return
        if not secret_key:
            self.delete_secret(profile_name)
            return
        try:
            keyring.set_password(self._service_name, profile_name, secret_key)
        except KeyringError:
            LOGGER.warning("Unable to store secret for profile '%s' in the keychain", profile_name)

    def delete_secret(self, profile_name: str) -> None:
        if not profile_name:
            return
        try:
            keyring.delete_password(self._service_name, profile_name)
        except KeyringError:
            # Nothing stored for this profile.
            return


class ConfigStorage:
    """JSON-backed store for :class:`HelperSettings` and connection profiles.

    Secrets never stay in the JSON file: a plaintext ``secret_key`` found while
    loading is moved to the keychain and the file is rewritten without it.
    """

    def __init__(self, storage_path: str | Path | None = None, keychain: KeychainStore | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".s3_bucket_helpers.json"
        self._path = Path(storage_path)
        self._keychain = keychain or KeychainStore()

    @property
    def path(self) -> Path:
        return self._path

    def load_settings(self) -> HelperSettings:
        data = self._read()
        page_size = data.get("page_size", DEFAULT_PAGE_SIZE)
        try:
            page_value = int(page_size)
        except (TypeError, ValueError):
            page_value = DEFAULT_PAGE_SIZE
        if page_value <= 0:
            page_value = DEFAULT_PAGE_SIZE
        default_profile = data.get("default_profile")
        if not isinstance(default_profile, str):
            default_profile = ""
        return HelperSettings(page_size=page_value, default_profile=default_profile)

    def load_profiles(self) -> list[ConnectionProfile]:
        data = self._read()
        entries = data.get("profiles")
        if not isinstance(entries, list):
            return []

        profiles: list[ConnectionProfile] = []
        migrated = False
        for entry in entries:
            try:
                name = entry["name"]
                endpoint_url = entry["endpoint_url"]
                access_key = entry["access_key"]
            except (KeyError, TypeError):
                LOGGER.debug("Skipping malformed profile entry in %s", self._path)
                continue
            secret_key = entry.get("secret_key", "")
            if secret_key:
                migrated = True
                self._keychain.set_secret(name, secret_key)
            else:
                secret_key = self._keychain.get_secret(name)
            profiles.append(
                ConnectionProfile(
                    name=name,
                    endpoint_url=endpoint_url,
                    access_key=access_key,
                    secret_key=secret_key,
                    region_name=entry.get("region_name", "") or "",
                )
            )
        if migrated:
            LOGGER.debug("Moved plaintext secrets from %s to the keychain", self._path)
            data["profiles"] = [self._profile_record(profile) for profile in profiles]
            self._write(data)
        return profiles

    def get_profile(self, name: str) -> ConnectionProfile:
        for profile in self.load_profiles():
            if profile.name == name:
                return profile
        raise ProfileNotFoundError(f"Profile '{name}' does not exist")

    def save(self, settings: HelperSettings, profiles: list[ConnectionProfile]) -> None:
        previous = {
            entry.get("name")
            for entry in self._read().get("profiles") or []
            if isinstance(entry, dict)
        }
        for profile in profiles:
            self._keychain.set_secret(profile.name, profile.secret_key)
        for name in previous - {profile.name for profile in profiles}:
            if isinstance(name, str):
                self._keychain.delete_secret(name)
        self._write(
            {
                "page_size": max(int(settings.page_size), 1),
                "default_profile": settings.default_profile,
                "profiles": [self._profile_record(profile) for profile in profiles],
            }
        )

    @staticmethod
    def _profile_record(profile: ConnectionProfile) -> dict[str, str]:
        record = {
            "name": profile.name,
            "endpoint_url": profile.endpoint_url,
            "access_key": profile.access_key,
        }
        if profile.region_name:
            record["region_name"] = profile.region_name
        return record

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            LOGGER.warning("Ignoring unreadable configuration file %s", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
