"""AWS console credential files.

The IAM console hands out a CSV with a header row and one data row::

    User name,Password,Access key ID,Secret access key,Console login link
    deploy,,AKIA...,wJalr...,https://...

Columns may appear in any order. Only the access key pair is extracted.
Prefer :meth:`Credential.to_config` over :func:`export_to_env`; the latter
mutates process-wide state and is kept for tools that only read the
standard AWS environment variables.
"""

from __future__ import annotations

import csv
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from vmctl.base.config import AWSConfig
from vmctl.base.exceptions import CredentialError, MalformedCredentialsError

HEADERS: tuple[str, ...] = (
    "User name",
    "Password",
    "Access key ID",
    "Secret access key",
    "Console login link",
)

ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
SESSION_TOKEN = "AWS_SESSION_TOKEN"


@dataclass(frozen=True)
class Credential:
    """One access key pair."""

    access_key_id: str
    secret_access_key: str

    def __repr__(self) -> str:
        return f"Credential(access_key_id={self.access_key_id!r}, secret_access_key='***')"

    @classmethod
    def from_csv(cls, path: str | Path) -> Credential:
        """Read the first credential from a console CSV file.

        Raises:
            CredentialError: The file cannot be read.
            MalformedCredentialsError: Missing columns or mismatched row.
        """
        try:
            with open(path, newline="", encoding="utf-8-sig") as fh:
                return cls.from_lines(fh)
        except OSError as e:
            raise CredentialError(f"Cannot read credentials file '{path}'") from e

    @classmethod
    def from_lines(cls, lines: Any) -> Credential:
        """Parse CSV text given as any iterable of lines."""
        reader = csv.reader(lines)
        header = next(reader, None)
        if header is None:
            raise MalformedCredentialsError("Credentials file is empty")
        header = [column.strip() for column in header]
        missing = [column for column in HEADERS if column not in header]
        if missing:
            raise MalformedCredentialsError(
                f"Could not find columns {missing} in header {header}"
            )

        row = next(reader, None)
        if row is None:
            raise MalformedCredentialsError("Expected a data row in credentials, found none")
        if len(row) != len(header):
            raise MalformedCredentialsError(
                f"Credential row has {len(row)} columns, header has {len(header)}"
            )

        values = dict(zip(header, row))
        return cls(
            access_key_id=values["Access key ID"].strip(),
            secret_access_key=values["Secret access key"].strip(),
        )

    def to_config(self, **overrides: Any) -> AWSConfig:
        """Build an explicit credentials context for the AWS backend."""
        return AWSConfig(
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            **overrides,
        )


def export_to_env(cred: Credential, session_token: str | None = None) -> None:
    """Write *cred* into the standard AWS environment variables.

    ``AWS_SESSION_TOKEN`` is only written when a token is given; otherwise
    any stale token is removed so it cannot pair with the new key.
    """
    os.environ[ACCESS_KEY_ID] = cred.access_key_id
    os.environ[SECRET_ACCESS_KEY] = cred.secret_access_key
    if session_token:
        os.environ[SESSION_TOKEN] = session_token
    else:
        os.environ.pop(SESSION_TOKEN, None)


def export_to_env_from(path: str | Path) -> Credential:
    """Parse *path* and export its credential. Returns the credential."""
    cred = Credential.from_csv(path)
    export_to_env(cred)
    return cred


__all__ = [
    "Credential",
    "HEADERS",
    "export_to_env",
    "export_to_env_from",
]
