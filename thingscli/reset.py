"""Resetting the account's history key."""

from __future__ import annotations

import sys
from typing import Callable, TextIO

from .model import DongxiError
from .state import Session

_WARNING_TAIL = (
    "This will invalidate the current sync history and force all Things\n"
    "clients to re-sync from scratch. Unsynced changes may be lost.\n"
)


def run_reset(
    load_state: Callable[[], Session],
    assume_yes: bool = False,
    save_history_key: Callable[[str], None] | None = None,
    stdin: TextIO | None = None,
    out: TextIO | None = None,
) -> str | None:
    """Reset the history key; return the new key, or None if not confirmed.

    When save_history_key is given it is called with the new key so the
    local configuration can follow the server.
    """
    stream = out if out is not None else sys.stdout
    source = stdin if stdin is not None else sys.stdin

    session = load_state()
    client = session.client
    try:
        account = client.get_account(client.email)
    except Exception as exc:
        raise DongxiError(f"fetch account: {exc}") from exc

    stream.write("WARNING: You are about to reset the Things Cloud history key.\n\n")
    stream.write(f"  Account: {account.email}\n")
    stream.write(f"  Current history key: {session.history_key}\n\n")
    stream.write(_WARNING_TAIL + "\n")

    if not assume_yes:
        stream.write("Type 'yes' to confirm: ")
        stream.flush()
        line = source.readline()
        if not line.endswith("\n"):
            raise DongxiError("read confirmation: EOF")
        if line.strip() != "yes":
            stream.write("Reset cancelled.\n")
            return None

    stream.write("Resetting history key...\n")
    try:
        response = client.reset_history(account.email)
    except Exception as exc:
        raise DongxiError(f"reset history: {exc}") from exc

    stream.write("History key reset successfully.\n")
    stream.write(f"New history key: {response.new_history_key}\n")

    if save_history_key is not None:
        try:
            save_history_key(response.new_history_key)
        except Exception as exc:
            raise DongxiError(
                f"update config: {exc}\n\n"
                "The server-side reset succeeded but the local config was not updated."
            ) from exc
        stream.write("Config updated.\n")

    stream.write("Restart Things on all your devices to complete the resync.\n")
    return response.new_history_key