import pytest

from rendezvous.core import config


def test_validate_runtime_config_accepts_default_grid(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'development')
    monkeypatch.setattr(config, 'SLOT_START_HOUR', 9)
    monkeypatch.setattr(config, 'SLOT_END_HOUR', 18)
    monkeypatch.setattr(config, 'SLOT_INCREMENT_MINUTES', 30)

    config.validate_runtime_config()


@pytest.mark.parametrize('increment_minutes', [0, -15, 45, 90])
def test_validate_runtime_config_rejects_uneven_slot_increment(
    monkeypatch: pytest.MonkeyPatch,
    increment_minutes: int,
) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'development')
    monkeypatch.setattr(config, 'SLOT_INCREMENT_MINUTES', increment_minutes)

    with pytest.raises(RuntimeError, match='SLOT_INCREMENT_MINUTES'):
        config.validate_runtime_config()


def test_validate_runtime_config_rejects_inverted_hours(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'development')
    monkeypatch.setattr(config, 'SLOT_START_HOUR', 18)
    monkeypatch.setattr(config, 'SLOT_END_HOUR', 9)

    with pytest.raises(RuntimeError, match='SLOT_START_HOUR'):
        config.validate_runtime_config()


def test_validate_runtime_config_requires_secret_in_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'production')
    monkeypatch.setattr(config, 'JWT_SECRET_KEY', 'change-me')

    with pytest.raises(RuntimeError, match='JWT_SECRET_KEY'):
        config.validate_runtime_config()
