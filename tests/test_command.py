"""Tests for client command construction and spawning."""
import logging
import subprocess

import pytest

from tdvault.command import (
    ClientKind,
    CommandSpec,
    ConnectionProfile,
    DangerLevel,
    Forward,
    Protocol,
    build_command,
    confirmation_message,
    danger_window_title,
    run_command,
)
from tdvault.exceptions import CommandFailed
from tdvault.redaction import MASK
from tdvault.vault import VaultConfig

PASSWORD = "hunter2"


@pytest.fixture
def config():
    return VaultConfig(ssh_path="ssh", tera_term_path="ttermpro.exe")


@pytest.fixture
def profile():
    return ConnectionProfile(
        profile_id="web01",
        name="Web 01",
        host="10.0.0.5",
        port=2222,
        user="admin",
        secret_id="s_ab12cd",
    )


@pytest.fixture
def teraterm(profile):
    return profile.model_copy(update={
        "client_kind": ClientKind.TERA_TERM,
        "danger_level": DangerLevel.CRITICAL,
        "macro_path": "C:/macros/login.ttl",
    })


# --- Building ---


class TestBuildCommand:
    """Tests for build_command()."""

    def test_plain_ssh(self, profile, config):
        spec = build_command(profile, config)
        assert spec.argv() == ["ssh", "admin@10.0.0.5", "-p", "2222"]
        assert not spec.has_secrets
        assert spec.window_title is None

    def test_ssh_extras_and_forwards(self, profile, config):
        profile = profile.model_copy(update={
            "extra_args": ["-A"],
            "forwards": [Forward(kind="L", spec="8080:localhost:80"), Forward(kind="D", spec="1080")],
        })
        assert build_command(profile, config).argv() == [
            "ssh", "admin@10.0.0.5", "-p", "2222", "-A",
            "-L", "8080:localhost:80", "-D", "1080",
        ]

    def test_plain_ssh_ignores_password(self, profile, config):
        spec = build_command(profile, config, password=PASSWORD)
        assert PASSWORD not in " ".join(spec.argv())

    def test_telnet(self, profile, config):
        profile = profile.model_copy(update={"protocol": Protocol.TELNET})
        assert build_command(profile, config).argv() == ["telnet", "10.0.0.5", "2222"]

    def test_teraterm(self, teraterm, config):
        spec = build_command(teraterm, config, password=PASSWORD)
        assert spec.argv() == [
            "ttermpro.exe",
            "/ssh",
            "10.0.0.5:2222",
            '/user="admin"',
            f'/passwd="{PASSWORD}"',
            '/W="[PROD] Web 01 (admin@10.0.0.5)"',
            '/MACRO="C:/macros/login.ttl"',
        ]
        assert spec.has_secrets

    def test_teraterm_without_password(self, teraterm, config):
        spec = build_command(teraterm, config)
        assert not any(arg.startswith("/passwd") for arg in spec.argv())


# --- Masking ---


class TestMasking:
    """The secret reaches argv() and nothing else."""

    def test_preview(self, teraterm, config):
        spec = build_command(teraterm, config, password=PASSWORD)
        assert PASSWORD not in spec.preview()
        assert MASK in spec.preview()
        assert PASSWORD not in " ".join(spec.masked_argv())

    def test_str_and_repr(self, teraterm, config):
        spec = build_command(teraterm, config, password=PASSWORD)
        assert PASSWORD not in str(spec)
        assert PASSWORD not in repr(spec)
        assert PASSWORD not in f"{spec!r} {spec}"

    def test_custom_mask_token(self, teraterm):
        config = VaultConfig(mask_token="<hidden>")
        spec = build_command(teraterm, config, password=PASSWORD)
        assert "<hidden>" in spec.preview()

    def test_debug_log_is_masked(self, teraterm, config, caplog):
        caplog.set_level(logging.DEBUG, logger="tdvault")
        build_command(teraterm, config, password=PASSWORD)
        assert "Built command" in caplog.text
        assert PASSWORD not in caplog.text

    def test_empty_secret_not_registered(self):
        spec = CommandSpec("prog", ["a"], secrets=["", "x"])
        assert spec.preview() == "prog a"


# --- Spawning ---


class TestRunCommand:
    """Tests for run_command()."""

    def test_passes_real_argv(self, teraterm, config):
        calls = []

        def runner(argv, **kwargs):
            calls.append((argv, kwargs))
            return "done"

        spec = build_command(teraterm, config, password=PASSWORD)
        assert run_command(spec, runner=runner) == "done"
        argv, kwargs = calls[0]
        assert f'/passwd="{PASSWORD}"' in argv
        assert kwargs["check"] is True

    def test_nonzero_exit(self, teraterm, config, caplog):
        def runner(argv, **kwargs):
            raise subprocess.CalledProcessError(3, argv)

        spec = build_command(teraterm, config, password=PASSWORD)
        with pytest.raises(CommandFailed) as exc_info:
            run_command(spec, runner=runner)
        err = exc_info.value
        assert err.returncode == 3
        assert err.reason == "exit status 3"
        assert PASSWORD not in str(err)
        assert PASSWORD not in err.command
        assert err.__cause__ is None
        assert err.__context__ is None
        assert PASSWORD not in caplog.text

    def test_timeout(self, teraterm, config, caplog):
        """A timed-out client is reported with the masked preview only."""
        seen = {}

        def runner(argv, **kwargs):
            seen.update(kwargs)
            raise subprocess.TimeoutExpired(argv, kwargs["timeout"])

        spec = build_command(teraterm, config, password=PASSWORD)
        with pytest.raises(CommandFailed) as exc_info:
            run_command(spec, runner=runner, timeout=5)
        err = exc_info.value
        assert seen["timeout"] == 5
        assert err.returncode is None
        assert err.reason == "timed out after 5 seconds"
        assert PASSWORD not in str(err)
        assert MASK in str(err)
        assert err.__cause__ is None
        assert err.__context__ is None
        assert PASSWORD not in caplog.text

    def test_other_subprocess_error(self, teraterm, config):
        def runner(argv, **kwargs):
            raise subprocess.SubprocessError(f"cannot run {argv}")

        spec = build_command(teraterm, config, password=PASSWORD)
        with pytest.raises(CommandFailed) as exc_info:
            run_command(spec, runner=runner)
        assert exc_info.value.reason == "SubprocessError"
        assert PASSWORD not in str(exc_info.value)
        assert exc_info.value.__context__ is None

    def test_missing_program(self, config):
        spec = CommandSpec("/nonexistent/tdvault-client", [f"--password={PASSWORD}"], secrets=[PASSWORD])
        with pytest.raises(CommandFailed) as exc_info:
            run_command(spec)
        assert exc_info.value.returncode is None
        assert PASSWORD not in str(exc_info.value)
        assert MASK in str(exc_info.value)


# --- Danger prompts ---


class TestDanger:
    def test_normal_has_no_title(self, profile):
        assert danger_window_title(profile) is None
        assert not profile.is_dangerous()

    def test_dangerous_title(self, profile):
        profile = profile.model_copy(update={"danger_level": DangerLevel.HIGH})
        assert danger_window_title(profile) == "[PROD] Web 01 (admin@10.0.0.5)"

    @pytest.mark.parametrize("level,suffix", [
        (DangerLevel.NORMAL, ""),
        (DangerLevel.HIGH, " [HIGH]"),
        (DangerLevel.CRITICAL, " [CRITICAL]"),
    ])
    def test_confirmation_message(self, profile, level, suffix):
        profile = profile.model_copy(update={"danger_level": level})
        assert confirmation_message(profile) == f"Connect to Web 01 (10.0.0.5) as admin{suffix}?"

    def test_confirmation_without_user(self, profile):
        profile = profile.model_copy(update={"user": None})
        assert confirmation_message(profile) == "Connect to Web 01 (10.0.0.5) as <default>?"
