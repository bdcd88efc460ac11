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

from random import Random
from unittest import TestCase

import pytest
from pytest import param as p

from opentelemetry.sampler.consistent_probability import (
    PropagationState,
    generate_r,
    parse_trace_state,
    render_trace_state,
)
from opentelemetry.trace import TraceState


@pytest.mark.parametrize(
    "ot_value,expected_p,expected_r,expected_extra_fields",
    (
        p("p:1;r:62", 1, 62, (), id="p and r"),
        p("r:0", None, 0, (), id="r only"),
        p("p:1", 1, None, (), id="p only"),
        p("r:5;p:3", 3, 5, (), id="reversed order"),
        p("p:63;r:62", 63, 62, (), id="max values"),
        p("p:64;r:63", None, None, (), id="out of range"),
        p("p:x;r:-1", None, None, (), id="not numbers"),
        p("p:;r:", None, None, (), id="empty values"),
        p("p:1.5;r:1e1", None, None, (), id="not integers"),
        p("p:2;r:4;p:5;r:6", 2, 4, (), id="duplicates keep first"),
        p("p:2;foo:bar;r:4;baz", 2, 4, ("foo:bar", "baz"), id="extra fields"),
        p("p-2/r-4", None, None, ("p-2/r-4",), id="wrong delimiter"),
    ),
)
def test_parse(ot_value, expected_p, expected_r, expected_extra_fields):
    state = parse_trace_state(TraceState([("ot", ot_value)]))

    assert state.p == expected_p
    assert state.r == expected_r
    assert state.extra_fields == expected_extra_fields
    assert state.extra_entries == ()


@pytest.mark.parametrize(
    "state,header",
    (
        p(PropagationState(p=1, r=62), "ot=p:1;r:62", id="p and r"),
        p(PropagationState(r=0), "ot=r:0", id="r only"),
        p(PropagationState(), "", id="empty"),
        p(
            PropagationState(
                r=3,
                extra_fields=("k:v",),
                extra_entries=(("a", "1"), ("b", "2")),
            ),
            "ot=r:3;k:v,a=1,b=2",
            id="extra fields and entries",
        ),
        p(
            PropagationState(extra_entries=(("a", "1"),)),
            "a=1",
            id="nothing to propagate",
        ),
    ),
)
def test_render(state, header):
    assert render_trace_state(state).to_header() == header


class TestTraceStateCodec(TestCase):
    def test_parse_no_trace_state(self):
        self.assertEqual(parse_trace_state(None), PropagationState())
        self.assertEqual(parse_trace_state(TraceState()), PropagationState())

    def test_parse_without_ot_entry(self):
        state = parse_trace_state(TraceState([("a", "1"), ("b", "2")]))

        self.assertIsNone(state.p)
        self.assertIsNone(state.r)
        self.assertEqual(state.extra_entries, (("a", "1"), ("b", "2")))

    def test_parse_keeps_sibling_entries_in_order(self):
        state = parse_trace_state(
            TraceState(
                [("congo", "t61rcWkgMzE"), ("ot", "p:2;r:9"), ("rojo", "00f")]
            )
        )

        self.assertEqual(state.p, 2)
        self.assertEqual(state.r, 9)
        self.assertEqual(
            state.extra_entries, (("congo", "t61rcWkgMzE"), ("rojo", "00f"))
        )

    def test_render_moves_ot_to_the_front(self):
        trace_state = TraceState(
            [("congo", "t61rcWkgMzE"), ("ot", "p:2;r:9"), ("rojo", "00f")]
        )

        rendered = render_trace_state(
            parse_trace_state(trace_state).with_sampling(None, 9)
        )

        self.assertEqual(
            rendered.to_header(), "ot=r:9,congo=t61rcWkgMzE,rojo=00f"
        )
        # the input is left untouched
        self.assertEqual(
            trace_state.to_header(), "congo=t61rcWkgMzE,ot=p:2;r:9,rojo=00f"
        )

    def test_render_is_idempotent(self):
        trace_state = TraceState(
            [("ot", "p:4;r:7;x:y"), ("vendor", "opaque-value")]
        )

        first = render_trace_state(parse_trace_state(trace_state))
        second = render_trace_state(parse_trace_state(first))

        self.assertEqual(
            first.to_header(), "ot=p:4;r:7;x:y,vendor=opaque-value"
        )
        self.assertEqual(first.to_header(), second.to_header())

    def test_render_respects_list_member_limit(self):
        entries = tuple((f"vendor{index}", str(index)) for index in range(32))

        rendered = render_trace_state(
            PropagationState(r=1, extra_entries=entries)
        )

        self.assertEqual(len(rendered), 32)
        self.assertEqual(list(rendered.keys())[0], "ot")
        self.assertNotIn("vendor31", rendered)
        self.assertIn("vendor30", rendered)

    def test_with_sampling_returns_a_copy(self):
        state = PropagationState(p=1, r=2, extra_entries=(("a", "1"),))

        updated = state.with_sampling(None, 5)

        self.assertEqual(state.p, 1)
        self.assertEqual(state.r, 2)
        self.assertEqual(
            updated, PropagationState(r=5, extra_entries=(("a", "1"),))
        )

    def test_render_drops_extra_fields_that_would_end_in_space(self):
        state = parse_trace_state(TraceState([("ot", "x ;y:1;r:5")]))

        self.assertEqual(
            render_trace_state(state.with_sampling(1, 5)).get("ot"),
            "p:1;r:5;x ;y:1",
        )

        state = parse_trace_state(TraceState([("ot", "y:1;x ;r:5")]))

        self.assertEqual(
            render_trace_state(state.with_sampling(1, 5)).get("ot"),
            "p:1;r:5;y:1",
        )

    def test_render_drops_extra_fields_beyond_length_limit(self):
        long_field = "k" * 200
        state = PropagationState(
            r=5, extra_fields=("a:1", long_field, "b:" + "2" * 60)
        )

        rendered = render_trace_state(state.with_sampling(10, 5))

        self.assertEqual(rendered.get("ot"), f"p:10;r:5;a:1;{long_field}")
        self.assertEqual(parse_trace_state(rendered).r, 5)

class TestGenerateR(TestCase):
    def test_bounds(self):
        self.assertEqual(generate_r(0x00112233445566770000000000000001), 62)
        self.assertEqual(generate_r(0x0011223344556677FFFFFFFFFFFFFFFF), 0)
        self.assertEqual(generate_r(0), 62)
        self.assertEqual(generate_r((1 << 128) - 1), 0)

    def test_counts_leading_zeros_of_low_bits(self):
        # Only the 64 low-order bits are random
        high = 0xFFFFFFFFFFFFFFFF << 64
        self.assertEqual(generate_r(high | (1 << 63)), 0)
        self.assertEqual(generate_r(high | (1 << 62)), 1)
        self.assertEqual(generate_r(high | (1 << 40)), 23)
        self.assertEqual(generate_r(high | 0x7), 61)
        self.assertEqual(generate_r(high | 0x2), 62)

    def test_distribution(self):
        rng = Random(3)
        values = [generate_r(rng.getrandbits(128)) for _ in range(20000)]

        self.assertTrue(all(0 <= value <= 62 for value in values))
        for k, expected in ((1, 0.5), (2, 0.25), (3, 0.125)):
            observed = sum(1 for value in values if value >= k) / len(values)
            self.assertAlmostEqual(observed, expected, delta=0.02)
