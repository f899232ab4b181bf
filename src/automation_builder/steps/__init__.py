"""Step model, palette, and UI <-> server translation."""

from .models import (
    ActionKind,
    DelayData,
    DelayUnit,
    DeleteFromCurrentListData,
    DeleteSubscriberData,
    HttpMethod,
    HttpRequestData,
    MoveToListData,
    PlaceholderSummary,
    SendEmailData,
    Step,
    StepData,
    StepKind,
    TEMP_ID_PREFIX,
    dump_steps,
    is_temporary_id,
    new_temporary_id,
    parse_step_data,
    stable_serialize,
)
from .palette import PALETTE_ITEMS, STEP_DEFAULTS, default_data
from .placeholders import AVAILABLE_TOKENS, parse_placeholders
from .translator import (
    ServerStepType,
    decode_server_steps,
    from_query_params_array,
    from_server,
    to_query_params_array,
    to_server,
)

__all__ = [
    "ActionKind",
    "DelayData",
    "DelayUnit",
    "DeleteFromCurrentListData",
    "DeleteSubscriberData",
    "HttpMethod",
    "HttpRequestData",
    "MoveToListData",
    "PlaceholderSummary",
    "SendEmailData",
    "Step",
    "StepData",
    "StepKind",
    "TEMP_ID_PREFIX",
    "dump_steps",
    "is_temporary_id",
    "new_temporary_id",
    "parse_step_data",
    "stable_serialize",
    "PALETTE_ITEMS",
    "STEP_DEFAULTS",
    "default_data",
    "AVAILABLE_TOKENS",
    "parse_placeholders",
    "ServerStepType",
    "decode_server_steps",
    "from_query_params_array",
    "from_server",
    "to_query_params_array",
    "to_server",
]
