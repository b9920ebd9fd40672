"""Wallet credential sources.

The secret recovery phrase comes from exactly one place per run, either a key
file or an environment variable. The orchestrator only sees the resolved
:class:`SecretPhrase` and never learns which source produced it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Protocol

from .config import ConfigurationError, TransferConfig
from .errors import CredentialError


@dataclass(frozen=True)
class SecretPhrase:
    """Mnemonic wrapper whose ``repr`` never reveals the words."""

    value: str = field(repr=False)

    def __str__(self) -> str:
        return "<redacted mnemonic>"

    @property
    def word_count(self) -> int:
        return len(self.value.split())


class CredentialSource(Protocol):
    def describe(self) -> str:
        ...

    def read(self) -> SecretPhrase:
        ...


@dataclass(frozen=True)
class FileCredentialSource:
    """Read the phrase from a key file containing the words on one line."""

    path: Path

    def describe(self) -> str:
        return f"file {self.path}"

    def read(self) -> SecretPhrase:
        if not self.path.exists():
            raise CredentialError(
                f"missing wallet credential: cannot find the key file {self.path}",
                hint=(
                    f"Create {self.path} containing your secret recovery phrase on a single line, "
                    "or point --wallet-file / --mnemonic-env at another source."
                ),
            )
        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise CredentialError(f"error reading the key file {self.path}: {exc}") from exc
        phrase = content.strip()
        if not phrase:
            raise CredentialError(f"the key file {self.path} is empty")
        return SecretPhrase(phrase)


@dataclass(frozen=True)
class EnvCredentialSource:
    """Read the phrase directly from an environment variable."""

    name: str
    env: Mapping[str, str] | None = field(default=None, repr=False, compare=False)

    def describe(self) -> str:
        return f"environment variable {self.name}"

    def read(self) -> SecretPhrase:
        env_map = os.environ if self.env is None else self.env
        phrase = (env_map.get(self.name) or "").strip()
        if not phrase:
            raise CredentialError(
                f"missing wallet credential: environment variable {self.name} is not set",
                hint=f"Export {self.name} with your secret recovery phrase before running the transfer.",
            )
        return SecretPhrase(phrase)


def credential_source_from_config(
    config: TransferConfig, *, env: Mapping[str, str] | None = None
) -> CredentialSource:
    """Return the single credential source named by ``config``."""

    if config.wallet_file is not None and config.mnemonic_env:
        raise ConfigurationError(
            "Configure exactly one credential source: either a wallet file or a mnemonic environment variable"
        )
    if config.mnemonic_env:
        return EnvCredentialSource(config.mnemonic_env, env=env)
    if config.wallet_file is not None:
        return FileCredentialSource(Path(config.wallet_file))
    raise ConfigurationError("No wallet credential source configured")
