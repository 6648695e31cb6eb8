"""Credential providers for the remote catalog API.

The sync code only asks for an API key, a playlist id and a channel id. Where
those strings come from is up to the provider. :class:`ObscuredCredentialProvider`
keeps them XOR-obscured with a salt so they are not greppable in config files;
that is obscurement only and offers no protection against anyone holding the
salt.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence
from typing import Protocol

from catalog_sync.services.errors import ConfigurationError


class CredentialProvider(Protocol):
    def api_key(self) -> str:
        ...

    def playlist_id(self) -> str:
        ...

    def channel_id(self) -> str:
        ...


class StaticCredentialProvider:
    def __init__(
        self,
        *,
        api_keys: Sequence[str],
        playlist_id: str,
        channel_id: str = "",
        choose_key: Callable[[Sequence[str]], str] = random.choice,
    ) -> None:
        keys = [key.strip() for key in api_keys if key.strip()]
        if not keys:
            raise ConfigurationError("At least one catalog API key is required.")
        self._api_keys = tuple(keys)
        self._playlist_id = playlist_id.strip()
        self._channel_id = channel_id.strip()
        self._choose_key = choose_key

    def api_key(self) -> str:
        # Keys rotate per request to spread quota usage.
        return self._choose_key(self._api_keys)

    def playlist_id(self) -> str:
        return self._playlist_id

    def channel_id(self) -> str:
        return self._channel_id


class ObscuredCredentialProvider:
    def __init__(
        self,
        *,
        salt: str,
        api_keys: Sequence[bytes],
        playlist_id: bytes,
        channel_id: bytes = b"",
        choose_key: Callable[[Sequence[bytes]], bytes] = random.choice,
    ) -> None:
        if not salt:
            raise ConfigurationError("A non-empty salt is required to reveal credentials.")
        if not api_keys:
            raise ConfigurationError("At least one catalog API key is required.")
        self._salt = salt
        self._api_keys = tuple(api_keys)
        self._playlist_id = playlist_id
        self._channel_id = channel_id
        self._choose_key = choose_key
        for value in (*self._api_keys, playlist_id, channel_id):
            reveal(value, salt=salt)

    @classmethod
    def from_hex(
        cls,
        *,
        salt: str,
        api_keys: Sequence[str],
        playlist_id: str,
        channel_id: str = "",
    ) -> ObscuredCredentialProvider:
        try:
            return cls(
                salt=salt,
                api_keys=[bytes.fromhex(key.strip()) for key in api_keys if key.strip()],
                playlist_id=bytes.fromhex(playlist_id.strip()),
                channel_id=bytes.fromhex(channel_id.strip()),
            )
        except ValueError as exc:
            raise ConfigurationError(f"Obscured credentials must be hex strings: {exc}") from exc

    def api_key(self) -> str:
        return reveal(self._choose_key(self._api_keys), salt=self._salt)

    def playlist_id(self) -> str:
        return reveal(self._playlist_id, salt=self._salt)

    def channel_id(self) -> str:
        return reveal(self._channel_id, salt=self._salt)


def obscure(value: str, *, salt: str) -> bytes:
    return _xor(value.encode("utf-8"), salt.encode("utf-8"))


def reveal(obscured: bytes, *, salt: str) -> str:
    try:
        return _xor(obscured, salt.encode("utf-8")).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigurationError(
            "Obscured credential does not decode with the configured salt."
        ) from exc


def _xor(data: bytes, cipher: bytes) -> bytes:
    if not cipher:
        return data
    length = len(cipher)
    return bytes(byte ^ cipher[index % length] for index, byte in enumerate(data))
