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

from logging import getLogger
from random import Random, SystemRandom
from typing import Optional, Sequence

from typing_extensions import override

from opentelemetry.context import Context
from opentelemetry.sampler.consistent_probability._probability import (
    ProbabilityDecomposer,
)
from opentelemetry.sampler.consistent_probability._protocol import (
    ConsistentSamplingProtocol,
)
from opentelemetry.sampler.consistent_probability._trace_state import (
    OT_TRACE_STATE_KEY,
    PropagationState,
    generate_r,
    parse_trace_state,
    render_trace_state,
)
from opentelemetry.sdk.trace.sampling import Decision, Sampler, SamplingResult
from opentelemetry.trace import Link, SpanKind, get_current_span
from opentelemetry.trace.span import TraceState
from opentelemetry.util.types import Attributes

_logger = getLogger(__name__)


class ConsistentSampler(Sampler):
    """
    Sampler that keeps spans of the same trace consistently across services.

    Every trace carries a randomness value ``r`` in the ``ot`` member of its
    ``tracestate``. A span is kept when the exponent ``p`` drawn from
    ``probability`` is not greater than ``r``, so samplers with a lower ``p``
    always keep what samplers with a higher ``p`` keep.

    Args:
        probability: Decides the exponent ``p`` for each sampling decision
        rng: Random source for the choice between the two exponents
            bracketing the configured probability (Optional)
    """

    def __init__(
        self,
        probability: ConsistentSamplingProtocol,
        rng: Optional[Random] = None,
    ):
        self._probability = probability
        if rng is None:
            rng = SystemRandom()
        self._rng = rng

    @property
    def probability(self) -> ConsistentSamplingProtocol:
        return self._probability

    @override
    def should_sample(
        self,
        parent_context: Optional["Context"],
        trace_id: int,
        name: str,
        kind: Optional[SpanKind] = None,
        attributes: Attributes = None,
        links: Optional[Sequence["Link"]] = None,
        trace_state: Optional["TraceState"] = None,
    ) -> "SamplingResult":
        parent_span_context = get_current_span(
            parent_context
        ).get_span_context()
        p = self._probability.threshold_exponent(self._rng)

        if parent_span_context is not None and parent_span_context.is_valid:
            state = parse_trace_state(parent_span_context.trace_state)
            r = state.r
            if r is None:
                _logger.debug(
                    "ConsistentSampler: potentially inconsistent trace detected - ot: %s",
                    parent_span_context.trace_state.get(OT_TRACE_STATE_KEY),
                )
                r = generate_r(trace_id)
        else:
            state = PropagationState()
            r = generate_r(trace_id)

        if p <= r:
            return SamplingResult(
                Decision.RECORD_AND_SAMPLE,
                attributes,
                render_trace_state(state.with_sampling(p, r)),
            )
        return SamplingResult(
            Decision.DROP,
            None,
            render_trace_state(state.with_sampling(None, r)),
        )

    @override
    def get_description(self) -> str:
        return self._probability.get_description()


def consistent_probability_based(
    probability: float, rng: Optional[Random] = None
) -> ConsistentSampler:
    """Returns a `ConsistentSampler` keeping ``probability`` of the traces."""
    return ConsistentSampler(ProbabilityDecomposer(probability), rng=rng)
