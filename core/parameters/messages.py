"""Message dispatch between UI surfaces and the parameter engine.

Messages are plain dicts (``{"type": "TOGGLE_PRESET", "tabId": 7, ...}``);
every dispatch answers with a ``ParameterMessageResponse`` and never raises.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .engine import ParameterEngine

logger = logging.getLogger(__name__)


class _Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TogglePresetMessage(_Message):
    type: Literal["TOGGLE_PRESET"]
    tab_id: int | str = Field(..., alias="tabId")
    preset_id: str = Field(..., alias="presetId")


class ApplyPresetMessage(_Message):
    type: Literal["APPLY_PRESET"]
    tab_id: int | str = Field(..., alias="tabId")
    preset_id: str = Field(..., alias="presetId")


class RemovePresetMessage(_Message):
    type: Literal["REMOVE_PRESET"]
    tab_id: int | str = Field(..., alias="tabId")
    preset_id: str = Field(..., alias="presetId")


class GetActivePresetsMessage(_Message):
    type: Literal["GET_ACTIVE_PRESETS"]
    tab_id: int | str = Field(..., alias="tabId")


class PresetsUpdatedMessage(_Message):
    type: Literal["PRESETS_UPDATED"]


class TabClosedMessage(_Message):
    type: Literal["TAB_CLOSED"]
    tab_id: int | str = Field(..., alias="tabId")


ParameterMessage = Annotated[
    Union[
        TogglePresetMessage,
        ApplyPresetMessage,
        RemovePresetMessage,
        GetActivePresetsMessage,
        PresetsUpdatedMessage,
        TabClosedMessage,
    ],
    Field(discriminator="type"),
]

_message_adapter: TypeAdapter[ParameterMessage] = TypeAdapter(ParameterMessage)


class ParameterMessageResponse(BaseModel):
    success: bool
    data: Any = None
    error: str | None = None


def parse_message(raw: dict[str, Any]) -> ParameterMessage:
    return _message_adapter.validate_python(raw)


class MessageDispatcher:
    def __init__(self, engine: ParameterEngine) -> None:
        self.engine = engine

    async def dispatch(self, raw: dict[str, Any]) -> ParameterMessageResponse:
        try:
            message = parse_message(raw)
        except ValidationError as e:
            return ParameterMessageResponse(success=False, error=f"Invalid message: {e.error_count()} error(s)")

        try:
            return await self._handle(message)
        except Exception as e:
            logger.exception("Message %s failed", message.type)
            return ParameterMessageResponse(success=False, error=str(e))

    async def _handle(self, message: ParameterMessage) -> ParameterMessageResponse:
        engine = self.engine
        match message:
            case TogglePresetMessage(tab_id=tab_id, preset_id=preset_id):
                result = await engine.toggle_preset(tab_id, preset_id)
                return ParameterMessageResponse(
                    success=result.success,
                    data={"active": result.active, "success": result.success},
                )
            case ApplyPresetMessage(tab_id=tab_id, preset_id=preset_id):
                return ParameterMessageResponse(success=await engine.apply_preset(tab_id, preset_id))
            case RemovePresetMessage(tab_id=tab_id, preset_id=preset_id):
                return ParameterMessageResponse(success=await engine.remove_preset(tab_id, preset_id))
            case GetActivePresetsMessage(tab_id=tab_id):
                return ParameterMessageResponse(success=True, data=await engine.active_preset_ids(tab_id))
            case TabClosedMessage(tab_id=tab_id):
                await engine.tab_closed(tab_id)
                return ParameterMessageResponse(success=True)
            case PresetsUpdatedMessage():
                return ParameterMessageResponse(success=True)
        return ParameterMessageResponse(success=False, error=f"Unknown message type: {message.type}")
