"""Message dispatch from UI surfaces into the engine."""

import pytest

from core.parameters.messages import (
    MessageDispatcher,
    TogglePresetMessage,
    parse_message,
)
from core.parameters.types import Parameter, ParameterType

TAB = 7


@pytest.fixture
def dispatcher(engine):
    return MessageDispatcher(engine)


async def _preset(engine):
    return await engine.presets.create_preset(
        "A", parameters=[Parameter(type=ParameterType.COOKIE, key="theme", value="dark")]
    )


def test_parse_message_uses_camel_case_fields():
    message = parse_message({"type": "TOGGLE_PRESET", "tabId": 7, "presetId": "p1"})

    assert isinstance(message, TogglePresetMessage)
    assert (message.tab_id, message.preset_id) == (7, "p1")


@pytest.mark.asyncio
async def test_toggle_message_round_trip(engine, dispatcher, target):
    preset = await _preset(engine)

    on = await dispatcher.dispatch({"type": "TOGGLE_PRESET", "tabId": TAB, "presetId": preset.id})
    active = await dispatcher.dispatch({"type": "GET_ACTIVE_PRESETS", "tabId": TAB})
    off = await dispatcher.dispatch({"type": "TOGGLE_PRESET", "tabId": TAB, "presetId": preset.id})

    assert on.success is True
    assert on.data == {"active": True, "success": True}
    assert active.data == [preset.id]
    assert off.data == {"active": False, "success": True}
    assert target.cookie(TAB, "theme") is None


@pytest.mark.asyncio
async def test_apply_and_remove_messages_skip_bookkeeping(engine, dispatcher, target):
    preset = await _preset(engine)

    applied = await dispatcher.dispatch({"type": "APPLY_PRESET", "tabId": TAB, "presetId": preset.id})
    assert applied.success is True
    assert target.cookie(TAB, "theme") == "dark"
    assert await engine.active_preset_ids(TAB) == []

    removed = await dispatcher.dispatch({"type": "REMOVE_PRESET", "tabId": TAB, "presetId": preset.id})
    assert removed.success is True
    assert target.cookie(TAB, "theme") is None


@pytest.mark.asyncio
async def test_unknown_preset_is_unsuccessful(dispatcher):
    response = await dispatcher.dispatch({"type": "APPLY_PRESET", "tabId": TAB, "presetId": "missing"})

    assert response.success is False


@pytest.mark.asyncio
async def test_tab_closed_message(engine, dispatcher):
    preset = await _preset(engine)
    await engine.activate_preset(TAB, preset.id)

    response = await dispatcher.dispatch({"type": "TAB_CLOSED", "tabId": TAB})

    assert response.success is True
    assert await engine.active_preset_ids(TAB) == []


@pytest.mark.asyncio
async def test_presets_updated_is_acknowledged(dispatcher):
    response = await dispatcher.dispatch({"type": "PRESETS_UPDATED"})

    assert response.success is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw",
    [
        {"type": "NOT_A_MESSAGE"},
        {"type": "TOGGLE_PRESET", "tabId": TAB},
        {},
    ],
)
async def test_invalid_messages_are_rejected(dispatcher, raw):
    response = await dispatcher.dispatch(raw)

    assert response.success is False
    assert response.error.startswith("Invalid message")


@pytest.mark.asyncio
async def test_handler_errors_become_error_responses(engine, dispatcher, monkeypatch):
    async def boom(tab_id):
        raise RuntimeError("store offline")

    monkeypatch.setattr(engine, "active_preset_ids", boom)

    response = await dispatcher.dispatch({"type": "GET_ACTIVE_PRESETS", "tabId": TAB})

    assert response.success is False
    assert response.error == "store offline"
