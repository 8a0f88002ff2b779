"""Non-echoing passphrase entry for presentation layers."""
import getpass
import hmac
from typing import Callable

from .vault.memory import SecretBytes


def prompt_passphrase(
    prompt: str = "Master passphrase: ",
    confirm: bool = False,
    reader: Callable[[str], str] = getpass.getpass,
) -> SecretBytes:
    """Read a passphrase without echoing it.

    Args:
        prompt: Prompt text.
        confirm: Ask twice and require both entries to match (used when
            setting a new master).
        reader: Input function; ``getpass.getpass`` by default.

    Returns:
        The passphrase in a wipe-on-drop buffer.

    Raises:
        ValueError: If the passphrase is empty or the confirmation differs.
    """
    first = SecretBytes(reader(prompt))
    if len(first) == 0:
        raise ValueError("Passphrase cannot be empty")
    if confirm:
        with SecretBytes(reader("Confirm " + prompt[:1].lower() + prompt[1:])) as second:
            if not hmac.compare_digest(bytes(first), bytes(second)):
                first.wipe()
                raise ValueError("Passphrases did not match")
    return first
