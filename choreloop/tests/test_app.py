"""Tests for the application factory, health check and entry point."""

import json
import pytest
from unittest.mock import patch

import config as app_config
from app import create_app, main
from errors import ConfigError


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({
        'chores': {
            'dishes': {'description': 'Do the dishes', 'frequency': '0 0 19 * * sun'},
        },
        'overdue_time': '2h',
        'port': 5050,
    }))
    return path


class TestCreateApp:
    """Tests for create_app."""

    def test_chore_settings_stored(self, app, chore_settings):
        assert app.config['CHORE_SETTINGS'] is chore_settings
        assert app.config['TESTING'] is True

    def test_extensions_registered(self, app):
        assert 'sqlalchemy' in app.extensions
        assert 'migrate' in app.extensions
        assert 'chore_generator' in app.extensions

    def test_no_session_secret_configured(self, app):
        assert app.config['SECRET_KEY'] is None

    def test_loads_chores_file(self, config_file, monkeypatch):
        monkeypatch.setattr(app_config.TestingConfig, 'CHORES_CONFIG', str(config_file))

        app = create_app('testing')

        settings = app.config['CHORE_SETTINGS']
        assert list(settings.templates) == ['dishes']
        assert settings.overdue_time == 7200

    def test_unknown_config_name(self, chore_settings):
        with pytest.raises(ConfigError):
            create_app('staging', chore_settings=chore_settings)

    def test_unknown_watermark_policy(self, chore_settings, monkeypatch):
        monkeypatch.setattr(app_config.TestingConfig, 'WATERMARK_POLICY', 'sometimes')

        with pytest.raises(ConfigError) as exc_info:
            create_app('testing', chore_settings=chore_settings)

        assert 'WATERMARK_POLICY' in exc_info.value.message

    def test_missing_chores_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr(app_config.TestingConfig, 'CHORES_CONFIG', str(tmp_path / 'missing.json'))

        with pytest.raises(ConfigError):
            create_app('testing')


class TestHealth:
    """Tests for /health."""

    def test_healthy(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'healthy'
        assert data['database'] == 'healthy'
        assert data['generator'] == {'running': False, 'tick_count': 0, 'last_error': None}

    def test_reports_ticks(self, client):
        client.post('/api/generator/run')

        data = client.get('/health').get_json()

        assert data['generator']['tick_count'] == 1


class TestMain:
    """Tests for the command line entry point."""

    def test_missing_config_exits_nonzero(self, tmp_path):
        assert main(['--config-path', str(tmp_path / 'missing.json'), '--env', 'testing']) == 1

    def test_invalid_config_exits_nonzero(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({
            'chores': {'dishes': {'description': '', 'frequency': 'whenever'}},
            'overdue_time': '2h',
        }))

        assert main(['--config-path', str(path), '--env', 'testing']) == 1

    def test_runs_server_on_config_port(self, config_file):
        with patch('flask.Flask.run') as run:
            assert main(['--config-path', str(config_file), '--env', 'testing']) == 0

        run.assert_called_once_with(host='0.0.0.0', port=5050, use_reloader=False)

    def test_port_flag_overrides_config(self, config_file):
        with patch('flask.Flask.run') as run:
            main(['--config-path', str(config_file), '--env', 'testing', '--port', '8080'])

        assert run.call_args.kwargs['port'] == 8080

    def test_defaults_to_production_config(self, config_file, monkeypatch):
        """The console script never starts the debugger unless asked to."""
        monkeypatch.delenv('FLASK_ENV', raising=False)

        with patch('app.create_app') as create:
            main(['--config-path', str(config_file)])

        assert create.call_args.args[0] == 'production'
        assert app_config.config['production'].DEBUG is False
