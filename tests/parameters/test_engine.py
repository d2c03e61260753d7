import pytest

from config.schema import ParamdeckSettings
from core.parameters import ParameterEngine
from core.parameters.types import Parameter, ParameterType
from storage.providers.memory import MemoryKVStore
from tests.fakes.target import FakeTarget

TAB = 7


def test_from_settings_uses_timing_and_storage_config():
    settings = ParamdeckSettings(
        timing={"navigation_settle_ms": 0, "propagation_delay_ms": 5},
        storage={"strategy": "memory"},
    )

    engine = ParameterEngine.from_settings(settings, FakeTarget())

    assert isinstance(engine.store, MemoryKVStore)
    assert engine.applicator.waiter.navigation_settle_ms == 0
    assert engine.applicator.waiter.propagation_delay_ms == 5


@pytest.mark.asyncio
async def test_verify_preset(engine):
    preset = await engine.presets.create_preset(
        "A", parameters=[Parameter(type=ParameterType.COOKIE, key="theme", value="dark")]
    )

    assert (await engine.verify_preset(TAB, preset.id)).all_verified is False
    await engine.activate_preset(TAB, preset.id)
    verification = await engine.verify_preset(TAB, preset.id)

    assert verification.all_verified is True
    assert verification.results[0].parameter.key == "theme"


@pytest.mark.asyncio
async def test_verify_missing_preset(engine):
    verification = await engine.verify_preset(TAB, "missing")

    assert verification.all_verified is False
    assert verification.results == []


@pytest.mark.asyncio
async def test_remove_missing_preset(engine):
    assert await engine.remove_preset(TAB, "missing") is False


@pytest.mark.asyncio
async def test_close_closes_store(engine, store, monkeypatch):
    closed = []

    async def close():
        closed.append(True)

    monkeypatch.setattr(store, "close", close)

    await engine.close()

    assert closed == [True]
