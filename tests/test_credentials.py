"""Tests for azsql_fog.credentials -- load_dotenv and AzureSettings."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from azsql_fog.credentials import _ENV_VARS, AzureSettings, load_dotenv

_FULL_ENV = (
    "CLIENT_ID=cid\nCLIENT_SECRET=csecret\nTENANT_ID=tid\nSUBSCRIPTION_ID=sid\n"
)


class TestLoadDotenv:
    def test_loads_vars_into_environ(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("FOO=bar\nBAZ=qux\n")
        with patch.dict(os.environ, {}, clear=True):
            load_dotenv(str(env_file))
            assert os.environ["FOO"] == "bar"
            assert os.environ["BAZ"] == "qux"

    def test_does_not_overwrite_existing(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("FOO=new\n")
        with patch.dict(os.environ, {"FOO": "old"}, clear=True):
            load_dotenv(str(env_file))
            assert os.environ["FOO"] == "old"

    def test_skips_comments_and_blanks(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("# comment\n\nKEY=val\n")
        with patch.dict(os.environ, {}, clear=True):
            load_dotenv(str(env_file))
            assert os.environ.get("KEY") == "val"

    def test_strips_quotes(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("A='quoted'\nB=\"double\"\n")
        with patch.dict(os.environ, {}, clear=True):
            load_dotenv(str(env_file))
            assert os.environ["A"] == "quoted"
            assert os.environ["B"] == "double"

    def test_second_call_is_noop(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("ONCE=1\n")
        with patch.dict(os.environ, {}, clear=True):
            load_dotenv(str(env_file))
            del os.environ["ONCE"]
            load_dotenv(str(env_file))
            assert "ONCE" not in os.environ

    def test_noop_when_file_missing(self, tmp_path):
        load_dotenv(str(tmp_path / "no-such-file"))


class TestAzureSettings:
    def test_resolves_explicit_params(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("")
        s = AzureSettings("c", "s", "t", "sub", dotenv_path=str(env_file))
        assert s.client_id == "c"
        assert s.tenant_id == "t"
        assert s.subscription_id == "sub"
        assert s.missing() == []

    def test_falls_back_to_env(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(_FULL_ENV)
        with patch.dict(os.environ, {}, clear=True):
            s = AzureSettings(dotenv_path=str(env_file))
        assert s.client_id == "cid"
        assert s.tenant_id == "tid"
        assert s.subscription_id == "sid"

    @pytest.mark.parametrize("attr,env_name", sorted(_ENV_VARS.items()))
    def test_each_setting_reads_its_env_var(self, attr, env_name, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("")
        with patch.dict(os.environ, {env_name: "from-env"}, clear=True):
            s = AzureSettings(dotenv_path=str(env_file))
        assert s.as_dict()[attr] == "from-env"
        assert env_name not in s.missing()

    def test_explicit_overrides_env(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("")
        with patch.dict(os.environ, {"SUBSCRIPTION_ID": "env-sub"}, clear=True):
            s = AzureSettings(subscription_id="arg-sub", dotenv_path=str(env_file))
        assert s.subscription_id == "arg-sub"

    def test_missing_lists_env_names(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("")
        with patch.dict(os.environ, {"CLIENT_ID": "cid"}, clear=True):
            s = AzureSettings(dotenv_path=str(env_file))
        assert s.missing() == ["CLIENT_SECRET", "TENANT_ID", "SUBSCRIPTION_ID"]

    def test_credential_raises_when_incomplete(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("")
        with patch.dict(os.environ, {}, clear=True):
            s = AzureSettings(dotenv_path=str(env_file))
            with pytest.raises(ValueError, match="CLIENT_SECRET"):
                s.credential()

    @patch("azsql_fog.credentials.ClientSecretCredential")
    def test_credential_builds_client_secret_credential(self, MockCred, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("")
        s = AzureSettings("c", "s", "t", "sub", dotenv_path=str(env_file))
        cred = s.credential()
        assert cred is MockCred.return_value
        MockCred.assert_called_once_with(tenant_id="t", client_id="c", client_secret="s")

    def test_repr_hides_secret(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("")
        s = AzureSettings("c", "topsecret", "t", "sub", dotenv_path=str(env_file))
        r = repr(s)
        assert "client_id='c'" in r
        assert "subscription_id='sub'" in r
        assert "topsecret" not in r
