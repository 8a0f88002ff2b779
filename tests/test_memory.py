"""Tests for wipe-on-drop buffers."""
import pytest

from tdvault.vault.memory import SecretBytes


class TestSecretBytes:
    """Tests for SecretBytes."""

    @pytest.mark.parametrize("data", [b"hunter2", bytearray(b"hunter2"), memoryview(b"hunter2"), "hunter2"])
    def test_construct(self, data):
        assert bytes(SecretBytes(data)) == b"hunter2"

    def test_unicode_str(self):
        buf = SecretBytes("pässword")
        assert buf.decode() == "pässword"
        assert len(buf) == len("pässword".encode("utf-8"))

    def test_wipe(self):
        buf = SecretBytes(b"hunter2")
        assert not buf.wiped
        buf.wipe()
        assert buf.wiped
        assert bytes(buf) == b"\x00" * 7

    def test_context_manager_wipes(self):
        with SecretBytes(b"hunter2") as buf:
            assert bytes(buf) == b"hunter2"
        assert buf.wiped

    def test_wipe_does_not_touch_source(self):
        source = bytearray(b"hunter2")
        SecretBytes(source).wipe()
        assert source == b"hunter2"

    def test_coerce(self):
        buf = SecretBytes(b"x")
        assert SecretBytes.coerce(buf) is buf
        assert SecretBytes.coerce("x") == buf

    def test_repr_and_str_hide_content(self):
        buf = SecretBytes(b"hunter2")
        assert repr(buf) == "<SecretBytes len=7>"
        assert str(buf) == repr(buf)
        assert f"{buf}" == repr(buf)

    def test_equality(self):
        assert SecretBytes(b"abc") == SecretBytes(b"abc")
        assert SecretBytes(b"abc") == b"abc"
        assert SecretBytes(b"abc") != b"abd"
        assert SecretBytes(b"abc") != "abc"

    def test_unhashable(self):
        with pytest.raises(TypeError):
            hash(SecretBytes(b"abc"))

    def test_view_is_readonly(self):
        buf = SecretBytes(b"abc")
        view = buf.view()
        assert bytes(view) == b"abc"
        with pytest.raises(TypeError):
            view[0] = 0
        view.release()
