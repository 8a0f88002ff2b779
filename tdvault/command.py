"""
Command construction for connection clients (ssh, telnet, Tera Term).

A revealed secret may be placed into the argument list handed to the spawn
call, and nowhere else: :class:`CommandSpec` keeps the secret values it was
built with and renders every preview, ``str``/``repr``, debug log line and
error message through the mask.
"""
import shlex
import logging
import subprocess
from enum import Enum
from typing import Any, Callable, Iterable

from pydantic import BaseModel, Field

from .exceptions import CommandFailed
from .redaction import MASK, mask_args
from .vault.config import VaultConfig

logger = logging.getLogger("tdvault.command")


class Protocol(str, Enum):
    SSH = "ssh"
    TELNET = "telnet"


class ClientKind(str, Enum):
    PLAIN_SSH = "plain_ssh"
    TERA_TERM = "teraterm"


class DangerLevel(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class ForwardKind(str, Enum):
    LOCAL = "L"
    REMOTE = "R"
    DYNAMIC = "D"


class Forward(BaseModel):
    """One ssh port forward, e.g. ``Forward(kind="L", spec="8080:localhost:80")``."""

    kind: ForwardKind
    spec: str = Field(min_length=1)


class ConnectionProfile(BaseModel):
    """The subset of a connection profile that command building needs.

    Profiles are owned elsewhere; ``secret_id`` only points at the vault
    record whose revealed value may be passed as ``password``.
    """

    profile_id: str
    name: str
    host: str = Field(min_length=1)
    port: int | None = Field(default=None, ge=1, le=65535)
    user: str | None = None
    protocol: Protocol = Protocol.SSH
    client_kind: ClientKind = ClientKind.PLAIN_SSH
    danger_level: DangerLevel = DangerLevel.NORMAL
    extra_args: list[str] = Field(default_factory=list)
    forwards: list[Forward] = Field(default_factory=list)
    macro_path: str | None = None
    secret_id: str | None = None

    def is_dangerous(self) -> bool:
        return self.danger_level != DangerLevel.NORMAL

    def display_title(self) -> str:
        return f"{self.name} ({self.ssh_target()})"

    def ssh_target(self) -> str:
        return f"{self.user}@{self.host}" if self.user else self.host

    def forwarding_args(self) -> list[str]:
        args: list[str] = []
        for forward in self.forwards:
            args.extend((f"-{forward.kind.value}", forward.spec))
        return args


class CommandSpec:
    """A built command line plus the secret values it contains.

    Args:
        program: Executable to spawn.
        args: Arguments, possibly carrying secret values.
        window_title: Title for the client window, if any.
        secrets: Values that must never be displayed.
        mask: Token shown in place of each secret.
    """

    def __init__(
        self,
        program: str,
        args: Iterable[str],
        window_title: str | None = None,
        secrets: Iterable[str] = (),
        mask: str = MASK,
    ):
        self.program = program
        self._args = list(args)
        self.window_title = window_title
        self._secrets = tuple(s for s in secrets if s)
        self._mask = mask

    @property
    def has_secrets(self) -> bool:
        return bool(self._secrets)

    def argv(self) -> list[str]:
        """Real argument vector. Pass it to the spawn call only."""
        return [self.program, *self._args]

    def masked_argv(self) -> list[str]:
        return mask_args(self.argv(), self._secrets, self._mask)

    def preview(self) -> str:
        """Shell-quoted, masked command line for dry-run display."""
        return shlex.join(self.masked_argv())

    def __str__(self) -> str:
        return self.preview()

    def __repr__(self) -> str:
        return f"CommandSpec({self.preview()!r})"


def danger_window_title(profile: ConnectionProfile) -> str | None:
    if profile.is_dangerous():
        return f"[PROD] {profile.display_title()}"
    return None


def confirmation_message(profile: ConnectionProfile) -> str:
    """Prompt shown before connecting to a profile."""
    suffix = {
        DangerLevel.CRITICAL: " [CRITICAL]",
        DangerLevel.HIGH: " [HIGH]",
        DangerLevel.NORMAL: "",
    }[profile.danger_level]
    return (
        f"Connect to {profile.name} ({profile.host}) as "
        f"{profile.user or '<default>'}{suffix}?"
    )


def _build_plain_command(profile: ConnectionProfile, config: VaultConfig) -> CommandSpec:
    if profile.protocol is Protocol.TELNET:
        args = [profile.host]
        if profile.port is not None:
            args.append(str(profile.port))
        return CommandSpec("telnet", args, danger_window_title(profile), mask=config.mask_token)

    args = [profile.ssh_target()]
    if profile.port is not None:
        args.extend(("-p", str(profile.port)))
    args.extend(profile.extra_args)
    args.extend(profile.forwarding_args())
    return CommandSpec(
        config.ssh_path, args, danger_window_title(profile), mask=config.mask_token,
    )


def _build_teraterm_command(
    profile: ConnectionProfile, config: VaultConfig, password: str | None,
) -> CommandSpec:
    args = ["/telnet" if profile.protocol is Protocol.TELNET else "/ssh"]
    host = profile.host
    if profile.port is not None:
        host = f"{host}:{profile.port}"
    args.append(host)
    if profile.user:
        args.append(f'/user="{profile.user}"')
    if password:
        args.append(f'/passwd="{password}"')
    window_title = danger_window_title(profile)
    if window_title:
        args.append(f'/W="{window_title}"')
    if profile.macro_path:
        args.append(f'/MACRO="{profile.macro_path}"')
    args.extend(profile.extra_args)
    args.extend(profile.forwarding_args())
    return CommandSpec(
        config.tera_term_path,
        args,
        window_title,
        secrets=(password,) if password else (),
        mask=config.mask_token,
    )


def build_command(
    profile: ConnectionProfile,
    config: VaultConfig,
    password: str | None = None,
) -> CommandSpec:
    """Build the client command line for ``profile``.

    Args:
        profile: Connection profile.
        config: Vault configuration (client paths, mask token).
        password: A revealed secret to pass to clients that accept one on
            the command line (Tera Term). Plain ssh never receives it.

    Returns:
        CommandSpec whose previews mask ``password``.
    """
    if profile.client_kind is ClientKind.TERA_TERM:
        spec = _build_teraterm_command(profile, config, password)
    else:
        if password:
            logger.debug(
                "Client %s takes no password argument; ignoring it",
                profile.client_kind.value,
            )
        spec = _build_plain_command(profile, config)
    logger.debug(
        "Built command: profile=%s client=%s argv=%s",
        profile.profile_id, profile.client_kind.value, spec.masked_argv(),
    )
    return spec


def run_command(
    spec: CommandSpec,
    runner: Callable[..., Any] = subprocess.run,
    **kwargs,
) -> Any:
    """Spawn ``spec`` and return the runner's result.

    Raises:
        CommandFailed: If the process cannot start, times out or exits
            non-zero. The message carries the masked preview and the
            original exception is not chained, so the raw argument list
            never reaches a traceback.
    """
    kwargs.setdefault("check", True)
    try:
        return runner(spec.argv(), **kwargs)
    except subprocess.CalledProcessError as err:
        returncode = err.returncode
        reason = f"exit status {returncode}"
    except subprocess.TimeoutExpired as err:
        returncode = None
        reason = f"timed out after {err.timeout} seconds"
    except subprocess.SubprocessError as err:
        returncode = None
        reason = type(err).__name__
    except OSError as err:
        returncode = None
        reason = err.strerror or type(err).__name__
    logger.warning("Command failed (%s): %s", reason, spec.preview())
    raise CommandFailed(spec.preview(), reason, returncode)
