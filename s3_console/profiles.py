from __future__ import annotations
"""Connection profile models and persistence."""
from dataclasses import dataclass
import json
from pathlib import Path

import keyring
from keyring.errors import KeyringError

from .store import DEFAULT_REGION, StoreCredentials


@dataclass
class ConnectionProfile:
    """A saved store connection; the secret lives in the OS keychain."""

    name: str
    endpoint_url: str
    access_key: str
    secret_key: str
    region: str = DEFAULT_REGION

    def to_credentials(self) -> StoreCredentials:
        return StoreCredentials(
            endpoint_url=self.endpoint_url,
            access_key=self.access_key,
            secret_key=self.secret_key,
            region=self.region or DEFAULT_REGION,
        )


class KeychainStore:
    """Encapsulates OS keychain access for secrets."""

    def __init__(self, service_name: str = "s3-console"):
        self._service_name = service_name

    def get_secret(self, profile_name: str) -> str:
        if not profile_name:
            return ""
        try:
            return keyring.get_password(self._service_name, profile_name) or ""
        except KeyringError:
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
            return

    def delete_secret(self, profile_name: str) -> None:
        if not profile_name:
            return
        try:
            keyring.delete_password(self._service_name, profile_name)
        except KeyringError:
            return


class ProfileStorage:
    """JSON-backed store for connection profiles.

    Only the public fields are written to disk. Secrets found in plaintext
    from older files are moved into the keychain on load.
    """

    def __init__(self, storage_path: str | Path | None = None, keychain: KeychainStore | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".s3_console_connections.json"
        self._path = Path(storage_path)
        self._keychain = keychain or KeychainStore()

    def load(self) -> list[ConnectionProfile]:
        data = self._read_data()
        profiles: list[ConnectionProfile] = []
        saw_plaintext = False
        for entry in data:
            try:
                name = entry["name"]
                endpoint_url = entry["endpoint_url"]
                access_key = entry["access_key"]
            except (KeyError, TypeError):
                continue
            secret_key = entry.get("secret_key", "")
            if secret_key:
                saw_plaintext = True
                self._keychain.set_secret(name, secret_key)
            else:
                secret_key = self._keychain.get_secret(name)
            profiles.append(
                ConnectionProfile(
                    name=name,
                    endpoint_url=endpoint_url,
                    access_key=access_key,
                    secret_key=secret_key,
                    region=entry.get("region") or DEFAULT_REGION,
                )
            )
        if saw_plaintext:
            self._write_data([_public_fields(profile) for profile in profiles])
        return profiles

    def save(self, profiles: list[ConnectionProfile]) -> None:
        current_names = {profile.name for profile in profiles}
        for profile in profiles:
            self._keychain.set_secret(profile.name, profile.secret_key)
        for entry in self._read_data():
            name = entry.get("name") if isinstance(entry, dict) else None
            if isinstance(name, str) and name and name not in current_names:
                self._keychain.delete_secret(name)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._write_data([_public_fields(profile) for profile in profiles])

    def _read_data(self) -> list:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return []
        return data if isinstance(data, list) else []

    def _write_data(self, data: list[dict[str, str]]) -> None:
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _public_fields(profile: ConnectionProfile) -> dict[str, str]:
    return {
        "name": profile.name,
        "endpoint_url": profile.endpoint_url,
        "access_key": profile.access_key,
        "region": profile.region,
    }
