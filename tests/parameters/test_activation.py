"""Activation state machine: idempotence, rollback and overlay precedence."""

import asyncio

import pytest

from core.parameters.activation import PresetState
from core.parameters.types import Parameter, ParameterType, PrimitiveType

TAB = 7

Q = ParameterType.QUERY_PARAMETER
C = ParameterType.COOKIE


async def _create(engine, name, *params):
    return await engine.presets.create_preset(
        name,
        parameters=[Parameter(type=t, key=k, value=v, primitive_type=pt) for t, k, v, pt in params],
    )


def _p(kind, key, value, primitive=None):
    return (kind, key, value, primitive)


@pytest.mark.asyncio
async def test_overlay_scenario_on_one_tab(engine, target):
    a = await _create(engine, "A", _p(C, "theme", "dark"), _p(Q, "debug", "1"))
    b = await _create(engine, "B", _p(C, "theme", "light"))

    assert await engine.activate_preset(TAB, a.id) is True
    assert target.cookie(TAB, "theme") == "dark"
    assert target.addresses[TAB] == "https://example.com/page?debug=1"

    assert await engine.activate_preset(TAB, b.id) is True
    assert target.cookie(TAB, "theme") == "light"
    assert await engine.active_preset_ids(TAB) == [a.id, b.id]

    assert await engine.deactivate_preset(TAB, b.id) is True
    assert target.cookie(TAB, "theme") == "dark"
    assert await engine.active_preset_ids(TAB) == [a.id]

    assert await engine.deactivate_preset(TAB, a.id) is True
    assert target.cookie(TAB, "theme") is None
    assert target.addresses[TAB] == "https://example.com/page"
    assert await engine.active_preset_ids(TAB) == []


@pytest.mark.asyncio
async def test_deactivating_earlier_preset_keeps_later_value(engine, target):
    a = await _create(engine, "A", _p(C, "theme", "dark"))
    b = await _create(engine, "B", _p(C, "theme", "light"))
    await engine.activate_preset(TAB, a.id)
    await engine.activate_preset(TAB, b.id)
    assert await engine.deactivate_preset(TAB, a.id) is True

    assert target.cookie(TAB, "theme") == "light"
    assert target.cookie_writes[-1] == ("https://example.com", "theme", "light")
    assert await engine.active_preset_ids(TAB) == [b.id]


@pytest.mark.asyncio
async def test_activation_is_idempotent(engine, target):
    a = await _create(engine, "A", _p(C, "theme", "dark"))

    assert await engine.activate_preset(TAB, a.id) is True
    writes = len(target.cookie_writes)
    assert await engine.activate_preset(TAB, a.id) is True

    assert len(target.cookie_writes) == writes
    assert await engine.active_preset_ids(TAB) == [a.id]


@pytest.mark.asyncio
async def test_deactivating_inactive_preset_is_noop(engine, target):
    a = await _create(engine, "A", _p(C, "theme", "dark"))

    assert await engine.deactivate_preset(TAB, a.id) is True
    assert target.cookie_writes == []


@pytest.mark.asyncio
async def test_failed_activation_rolls_back(engine, target):
    target.fail_cookie_keys = {"blocked"}
    a = await _create(engine, "A", _p(C, "blocked", "x"), _p(C, "theme", "dark"))

    assert await engine.activate_preset(TAB, a.id) is False

    assert await engine.active_preset_ids(TAB) == []
    assert await engine.activator.state_of(TAB, a.id) == PresetState.INACTIVE
    # best effort: the other cookie was still written
    assert target.cookie(TAB, "theme") == "dark"


@pytest.mark.asyncio
async def test_preset_is_recorded_active_while_applying(engine, target):
    a = await _create(engine, "A", _p(C, "theme", "dark"))
    seen = {}
    original_set_cookie = target.set_cookie

    async def observing_set_cookie(origin, name, value):
        seen["recorded"] = await engine.repo.is_preset_active(TAB, a.id)
        seen["state"] = await engine.activator.state_of(TAB, a.id)
        await original_set_cookie(origin, name, value)

    target.set_cookie = observing_set_cookie

    assert await engine.activate_preset(TAB, a.id) is True
    assert seen == {"recorded": True, "state": PresetState.ACTIVATING}
    assert await engine.activator.state_of(TAB, a.id) == PresetState.ACTIVE


@pytest.mark.asyncio
async def test_failed_deactivation_keeps_preset_active(engine, target):
    a = await _create(engine, "A", _p(C, "theme", "dark"))
    await engine.activate_preset(TAB, a.id)
    target.fail_cookie_keys = {"theme"}

    result = await engine.toggle_preset(TAB, a.id)

    assert result.success is False
    assert result.active is True
    assert await engine.active_preset_ids(TAB) == [a.id]


@pytest.mark.asyncio
async def test_toggle_flips_state(engine, target):
    a = await _create(engine, "A", _p(C, "theme", "dark"))

    first = await engine.toggle_preset(TAB, a.id)
    second = await engine.toggle_preset(TAB, a.id)

    assert (first.active, first.success) == (True, True)
    assert (second.active, second.success) == (False, True)
    assert target.cookie(TAB, "theme") is None


@pytest.mark.asyncio
async def test_boolean_parameter_deactivates_to_false(engine, target):
    a = await _create(
        engine,
        "flags",
        _p(Q, "dark_mode", "true", PrimitiveType.BOOLEAN),
        _p(C, "beta", "true", PrimitiveType.BOOLEAN),
        _p(Q, "lang", "fr"),
    )
    await engine.activate_preset(TAB, a.id)

    assert await engine.deactivate_preset(TAB, a.id) is True

    assert target.addresses[TAB] == "https://example.com/page?dark_mode=false"
    assert target.cookie(TAB, "beta") == "false"


@pytest.mark.asyncio
async def test_activate_missing_preset_fails(engine):
    assert await engine.activate_preset(TAB, "nope") is False
    assert await engine.active_preset_ids(TAB) == []


@pytest.mark.asyncio
async def test_deactivate_deleted_preset_drops_stale_id(engine):
    await engine.repo.set_active_preset_ids(TAB, ["ghost"])

    assert await engine.deactivate_preset(TAB, "ghost") is True
    assert await engine.active_preset_ids(TAB) == []


@pytest.mark.asyncio
async def test_tabs_are_independent(engine, target):
    a = await _create(engine, "A", _p(C, "theme", "dark"))

    await engine.activate_preset(TAB, a.id)

    assert await engine.active_preset_ids(8) == []
    assert target.cookies.get("https://other.test") is None


@pytest.mark.asyncio
async def test_concurrent_toggles_serialize(engine, target):
    a = await _create(engine, "A", _p(C, "theme", "dark"))

    results = await asyncio.gather(*(engine.toggle_preset(TAB, a.id) for _ in range(3)))

    assert [r.active for r in results] == [True, False, True]
    assert all(r.success for r in results)
    assert await engine.active_preset_ids(TAB) == [a.id]
    assert target.cookie(TAB, "theme") == "dark"


@pytest.mark.asyncio
async def test_concurrent_activations_on_different_tabs(engine, target):
    a = await _create(engine, "A", _p(C, "theme", "dark"))
    b = await _create(engine, "B", _p(C, "lang", "en"))

    await asyncio.gather(engine.activate_preset(TAB, a.id), engine.activate_preset(8, b.id))

    assert await engine.active_preset_ids(TAB) == [a.id]
    assert await engine.active_preset_ids(8) == [b.id]


@pytest.mark.asyncio
async def test_tab_closed_clears_state(engine):
    a = await _create(engine, "A", _p(C, "theme", "dark"))
    await engine.activate_preset(TAB, a.id)

    await engine.tab_closed(TAB)

    assert await engine.active_preset_ids(TAB) == []
    assert await engine.repo.get_tab_states() == {}


@pytest.mark.asyncio
async def test_deleting_preset_drops_it_from_every_tab(engine):
    a = await _create(engine, "A", _p(C, "theme", "dark"))
    b = await _create(engine, "B", _p(C, "lang", "en"))
    await engine.activate_preset(TAB, a.id)
    await engine.activate_preset(TAB, b.id)
    await engine.activate_preset(8, a.id)

    assert await engine.presets.delete_preset(a.id) is True

    assert await engine.repo.get_tab_states() == {"7": [b.id]}


@pytest.mark.asyncio
async def test_shared_query_value_survives_until_last_preset_leaves(engine, target):
    a = await _create(engine, "A", _p(Q, "env", "staging"))
    b = await _create(engine, "B", _p(Q, "env", "staging"), _p(C, "session", "x"))

    await engine.activate_preset(TAB, a.id)
    await engine.activate_preset(TAB, b.id)
    assert target.addresses[TAB] == "https://example.com/page?env=staging"
    assert target.cookie(TAB, "session") == "x"

    navigations = len(target.navigations)
    cookie_writes = len(target.cookie_writes)
    assert await engine.deactivate_preset(TAB, a.id) is True

    assert len(target.navigations) == navigations
    assert len(target.cookie_writes) == cookie_writes
    assert target.addresses[TAB] == "https://example.com/page?env=staging"
    assert target.cookie(TAB, "session") == "x"
    assert await engine.active_preset_ids(TAB) == [b.id]

    assert await engine.deactivate_preset(TAB, b.id) is True

    assert target.addresses[TAB] == "https://example.com/page"
    assert target.cookie(TAB, "session") is None
    assert await engine.active_preset_ids(TAB) == []


@pytest.mark.asyncio
async def test_concurrent_toggles_of_overlapping_presets(engine, target):
    a = await _create(engine, "A", _p(C, "theme", "dark"))
    b = await _create(engine, "B", _p(C, "theme", "light"))
    winning = {a.id: "dark", b.id: "light"}

    results = await asyncio.gather(engine.toggle_preset(TAB, a.id), engine.toggle_preset(TAB, b.id))

    assert all(r.active and r.success for r in results)
    active = await engine.active_preset_ids(TAB)
    assert active in ([a.id, b.id], [b.id, a.id])
    assert target.cookie(TAB, "theme") == winning[active[-1]]

    results = await asyncio.gather(engine.toggle_preset(TAB, a.id), engine.toggle_preset(TAB, b.id))

    assert all(not r.active and r.success for r in results)
    assert await engine.active_preset_ids(TAB) == []
    assert target.cookie(TAB, "theme") is None


@pytest.mark.asyncio
async def test_tab_closed_waits_for_in_flight_activation(engine, target):
    a = await _create(engine, "A", _p(C, "theme", "dark"))
    entered = asyncio.Event()
    release = asyncio.Event()
    original_set_cookie = target.set_cookie

    async def slow_set_cookie(origin, name, value):
        entered.set()
        await release.wait()
        await original_set_cookie(origin, name, value)

    target.set_cookie = slow_set_cookie

    activating = asyncio.create_task(engine.activate_preset(TAB, a.id))
    await entered.wait()
    closing = asyncio.create_task(engine.tab_closed(TAB))
    for _ in range(5):
        await asyncio.sleep(0)

    assert not closing.done()
    assert await engine.active_preset_ids(TAB) == [a.id]

    release.set()
    assert await activating is True
    await closing

    assert await engine.active_preset_ids(TAB) == []
    assert engine.activator._tab_locks == {}
