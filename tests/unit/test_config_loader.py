"""
Tests for loading session configuration from YAML.
"""
import textwrap

import pytest

from peerlink.core.data.net_enums import SessionMode
from peerlink.session.config_loader import SessionConfigLoader
from peerlink.session.managers.log_manager import LogLevel, LogManager


def write_config(tmp_path, text):
    path = tmp_path / "session.yaml"
    path.write_text(textwrap.dedent(text), encoding='utf-8')
    return str(path)


class TestSessionConfigLoader:
    """Test YAML parsing into SessionParams."""

    def test_full_config(self, tmp_path):
        path = write_config(tmp_path, """
            session:
              mode: client
              host: 10.0.0.5
              port: 9100
              uuid: desk-7
              max_connections: 4
            timeouts:
              connect: 3.5
              send: 1.5
              poll: 0.02
            policy:
              enabled: true
              port: 10843
        """)
        loader = SessionConfigLoader(path)

        assert loader.load_config()
        params = loader.get_params()

        assert loader.get_mode() == SessionMode.CLIENT
        assert params.host == "10.0.0.5"
        assert params.port == 9100
        assert params.uuid == "desk-7"
        assert params.max_connections == 4
        assert params.connect_timeout == 3.5
        assert params.send_timeout == 1.5
        assert params.poll_interval == 0.02
        assert params.enable_policy_server
        assert params.policy_port == 10843

    def test_missing_file_keeps_defaults(self, tmp_path):
        log_manager = LogManager()
        loader = SessionConfigLoader(str(tmp_path / "absent.yaml"), log_manager=log_manager)

        assert not loader.load_config()
        assert loader.get_mode() == SessionMode.SERVER
        assert loader.get_params().port == 9000
        assert any("not found" in m.text for m in log_manager.get_messages())

    def test_overrides_win(self, tmp_path):
        path = write_config(tmp_path, """
            session:
              port: 9100
        """)
        params = SessionConfigLoader.load_params(path, port=0)
        assert params.port == 0

    def test_invalid_yaml_raises(self, tmp_path):
        path = write_config(tmp_path, "session: [unclosed\n")
        with pytest.raises(ValueError, match="Failed to parse"):
            SessionConfigLoader(path).load_config()

    def test_non_mapping_raises(self, tmp_path):
        path = write_config(tmp_path, "- just\n- a list\n")
        with pytest.raises(ValueError, match="must be a mapping"):
            SessionConfigLoader(path).load_config()

    def test_unknown_key_raises(self, tmp_path):
        path = write_config(tmp_path, """
            session:
              colour: blue
        """)
        loader = SessionConfigLoader(path)
        loader.load_config()
        with pytest.raises(ValueError, match="colour"):
            loader.get_params()

    def test_out_of_range_value_raises(self, tmp_path):
        path = write_config(tmp_path, """
            session:
              port: 70000
        """)
        loader = SessionConfigLoader(path)
        loader.load_config()
        with pytest.raises(ValueError):
            loader.get_params()

    def test_unknown_mode_raises(self, tmp_path):
        path = write_config(tmp_path, """
            session:
              mode: relay
        """)
        loader = SessionConfigLoader(path)
        loader.load_config()
        with pytest.raises(ValueError, match="relay"):
            loader.get_mode()

    def test_logging_section(self, tmp_path):
        path = write_config(tmp_path, """
            logging:
              level: debug
              echo: false
              max_messages: 50
        """)
        loader = SessionConfigLoader(path)
        loader.load_config()
        manager = loader.create_log_manager(name="configured")

        assert manager.name == "configured"
        assert manager.log_level == LogLevel.DEBUG
        assert manager.messages.maxlen == 50
        assert not manager.echo

    def test_bundled_config_loads(self):
        loader = SessionConfigLoader()
        assert loader.load_config()
        assert loader.get_mode() == SessionMode.SERVER
        assert loader.get_params().port == 9000
