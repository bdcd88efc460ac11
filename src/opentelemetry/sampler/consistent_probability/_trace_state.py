# Copyright The OpenTelemetry Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Encoding of consistent sampling state in the W3C ``tracestate`` header.

The state lives in the ``ot`` list member, e.g. ``ot=p:2;r:5``. ``p`` is the
exponent used by the last sampler that kept the span and ``r`` is the
randomness value of the trace. Any other ``ot`` sub-fields and all other list
members are carried along untouched.
"""

from dataclasses import dataclass, field, replace
from re import compile as re_compile
from typing import List, Optional, Tuple

from opentelemetry.trace.span import TraceState

OT_TRACE_STATE_KEY = "ot"
FIELD_SEPARATOR = ";"
KEY_VALUE_SEPARATOR = ":"

MAX_P = 63
MAX_R = 62

# Limits from https://www.w3.org/TR/trace-context/#tracestate-header
_MAX_VALUE_LENGTH = 256
_MAX_LIST_MEMBERS = 32

_TRACE_ID_RANDOM_BITS = 0xFFFFFFFFFFFFFFFF

_valid_number = re_compile(r"[0-9]{1,2}")
_valid_value = re_compile(
    r"[\x20-\x2b\x2d-\x3c\x3e-\x7e]{0,255}[\x21-\x2b\x2d-\x3c\x3e-\x7e]"
)


@dataclass(frozen=True)
class PropagationState:
    p: Optional[int] = None
    r: Optional[int] = None
    extra_fields: Tuple[str, ...] = field(default=())
    extra_entries: Tuple[Tuple[str, str], ...] = field(default=())

    def with_sampling(
        self, p: Optional[int], r: Optional[int]
    ) -> "PropagationState":
        return replace(self, p=p, r=r)


def _parse_number(value: str, maximum: int) -> Optional[int]:
    if _valid_number.fullmatch(value) is None:
        return None
    number = int(value)
    if number > maximum:
        return None
    return number


def _parse_ot_value(
    value: str,
) -> Tuple[Optional[int], Optional[int], Tuple[str, ...]]:
    p = None
    r = None
    seen_p = seen_r = False
    rest: List[str] = []
    for ot_field in value.split(FIELD_SEPARATOR):
        key, _, field_value = ot_field.partition(KEY_VALUE_SEPARATOR)
        if key == "p":
            if not seen_p:
                p = _parse_number(field_value, MAX_P)
                seen_p = True
        elif key == "r":
            if not seen_r:
                r = _parse_number(field_value, MAX_R)
                seen_r = True
        elif ot_field:
            rest.append(ot_field)
    return p, r, tuple(rest)


def parse_trace_state(trace_state: Optional[TraceState]) -> PropagationState:
    """Reads the consistent sampling state out of ``trace_state``.

    Malformed or out of range ``p`` and ``r`` fields are reported as absent.
    """
    if not trace_state:
        return PropagationState()

    extra_entries = tuple(
        (key, value)
        for key, value in trace_state.items()
        if key != OT_TRACE_STATE_KEY
    )
    ot_value = trace_state.get(OT_TRACE_STATE_KEY)
    if ot_value is None:
        return PropagationState(extra_entries=extra_entries)

    p, r, extra_fields = _parse_ot_value(ot_value)
    return PropagationState(
        p=p, r=r, extra_fields=extra_fields, extra_entries=extra_entries
    )


def _render_ot_value(state: PropagationState) -> str:
    ot_fields: List[str] = []
    if state.p is not None:
        ot_fields.append(f"p{KEY_VALUE_SEPARATOR}{state.p}")
    if state.r is not None:
        ot_fields.append(f"r{KEY_VALUE_SEPARATOR}{state.r}")
    ot_fields.extend(state.extra_fields)
    return FIELD_SEPARATOR.join(ot_fields)


def _is_valid_ot_value(value: str) -> bool:
    return (
        len(value) <= _MAX_VALUE_LENGTH
        and _valid_value.fullmatch(value) is not None
    )


def render_trace_state(state: PropagationState) -> TraceState:
    """Builds a new `TraceState` carrying ``state``.

    The ``ot`` member is placed leftmost, as required for a modified member.
    """
    ot_value = _render_ot_value(state)
    # Extra fields never cost p and r their place in the header
    while not _is_valid_ot_value(ot_value) and state.extra_fields:
        state = replace(state, extra_fields=state.extra_fields[:-1])
        ot_value = _render_ot_value(state)
    if not ot_value:
        return TraceState(list(state.extra_entries))

    # Make room for the ot member by dropping the rightmost entries
    extra_entries = state.extra_entries[: _MAX_LIST_MEMBERS - 1]
    return TraceState([(OT_TRACE_STATE_KEY, ot_value), *extra_entries])


def generate_r(trace_id: int) -> int:
    """Derives the randomness value from the random bits of ``trace_id``.

    The result is the number of leading zeros of the 64 low-order bits of the
    trace id, capped at 62, so that ``r >= k`` holds with probability
    ``2**-k``.
    """
    random_bits = (trace_id & _TRACE_ID_RANDOM_BITS) | 0x3
    return 64 - random_bits.bit_length()
