import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from keyring.errors import KeyringError

from s3_console.profiles import ConnectionProfile, KeychainStore, ProfileStorage
from s3_console.store import StoreCredentials


class FakeKeychain:
    def __init__(self):
        self.secrets = {}
        self.set_calls = []
        self.delete_calls = []

    def get_secret(self, profile_name: str) -> str:
        return self.secrets.get(profile_name, "")

    def set_secret(self, profile_name: str, secret_key: str) -> None:
        self.set_calls.append((profile_name, secret_key))
        self.secrets[profile_name] = secret_key

    def delete_secret(self, profile_name: str) -> None:
        self.delete_calls.append(profile_name)
        self.secrets.pop(profile_name, None)


class ProfileStorageTests(unittest.TestCase):
    def test_load_migrates_plaintext_secrets(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "connections.json"
            payload = [
                {
                    "name": "alpha",
                    "endpoint_url": "https://one",
                    "access_key": "a",
                    "secret_key": "secret",
                }
            ]
            path.write_text(json.dumps(payload), encoding="utf-8")
            fake_keychain = FakeKeychain()
            storage = ProfileStorage(path, keychain=fake_keychain)

            profiles = storage.load()

            self.assertEqual("secret", profiles[0].secret_key)
            self.assertEqual("us-east-1", profiles[0].region)
            self.assertEqual([("alpha", "secret")], fake_keychain.set_calls)
            sanitized = json.loads(path.read_text(encoding="utf-8"))
            self.assertNotIn("secret_key", sanitized[0])

    def test_load_uses_keychain_when_secret_missing(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "connections.json"
            payload = [
                {"name": "alpha", "endpoint_url": "https://one", "access_key": "a", "region": "eu-west-1"},
                {"name": "broken"},
            ]
            path.write_text(json.dumps(payload), encoding="utf-8")
            fake_keychain = FakeKeychain()
            fake_keychain.secrets["alpha"] = "stored-secret"
            storage = ProfileStorage(path, keychain=fake_keychain)

            profiles = storage.load()

            self.assertEqual(1, len(profiles))
            self.assertEqual("stored-secret", profiles[0].secret_key)
            self.assertEqual("eu-west-1", profiles[0].region)

    def test_save_deletes_removed_keychain_entries(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "connections.json"
            payload = [
                {"name": "alpha", "endpoint_url": "https://one", "access_key": "a"},
                {"name": "beta", "endpoint_url": "https://two", "access_key": "b"},
            ]
            path.write_text(json.dumps(payload), encoding="utf-8")
            fake_keychain = FakeKeychain()
            storage = ProfileStorage(path, keychain=fake_keychain)

            profiles = [
                ConnectionProfile(name="alpha", endpoint_url="https://one", access_key="a", secret_key="secret"),
            ]
            storage.save(profiles)

            self.assertEqual(["beta"], fake_keychain.delete_calls)
            self.assertEqual([("alpha", "secret")], fake_keychain.set_calls)
            self.assertEqual(profiles, storage.load())

    def test_load_returns_empty_on_invalid_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "connections.json"
            path.write_text("not json", encoding="utf-8")

            self.assertEqual([], ProfileStorage(path, keychain=FakeKeychain()).load())


class ConnectionProfileTests(unittest.TestCase):
    def test_to_credentials(self):
        profile = ConnectionProfile(name="alpha", endpoint_url="https://one", access_key="a", secret_key="b", region="")

        self.assertEqual(StoreCredentials("https://one", "a", "b", "us-east-1"), profile.to_credentials())


class KeychainStoreTests(unittest.TestCase):
    def test_keyring_errors_are_ignored(self):
        keychain = KeychainStore(service_name="s3-console-tests")
        with mock.patch("s3_console.profiles.keyring") as fake_keyring:
            fake_keyring.get_password.side_effect = KeyringError("locked")
            fake_keyring.set_password.side_effect = KeyringError("locked")

            self.assertEqual("", keychain.get_secret("alpha"))
            keychain.set_secret("alpha", "secret")

            fake_keyring.set_password.assert_called_once_with("s3-console-tests", "alpha", "secret")

    def test_empty_secret_deletes_entry(self):
        keychain = KeychainStore(service_name="s3-console-tests")
        with mock.patch("s3_console.profiles.keyring") as fake_keyring:
            keychain.set_secret("alpha", "")

            fake_keyring.delete_password.assert_called_once_with("s3-console-tests", "alpha")
            fake_keyring.set_password.assert_not_called()


if __name__ == "__main__":
    unittest.main()
