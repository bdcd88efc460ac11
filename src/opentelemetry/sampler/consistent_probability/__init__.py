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
Consistent probability sampling
-------------------------------

`ConsistentSampler` makes sampling decisions that agree across all the
services taking part in a trace. The decision state is propagated in the
``ot`` member of the W3C ``tracestate`` header as ``p:<p>;r:<r>``.

Usage
-----

.. code-block:: python

    from opentelemetry import trace
    from opentelemetry.sampler.consistent_probability import (
        consistent_probability_based,
    )
    from opentelemetry.sdk.trace import TracerProvider

    # keep 10% of the traces
    trace.set_tracer_provider(
        TracerProvider(sampler=consistent_probability_based(0.1))
    )

The sampler can also be configured with environment variables, by setting
``OTEL_TRACES_SAMPLER=consistent_probability`` and
``OTEL_TRACES_SAMPLER_ARG=0.1``.

API
---
"""

__all__ = [
    "ConsistentProbabilitySamplerFactory",
    "ConsistentSampler",
    "ConsistentSamplingProtocol",
    "ProbabilityDecomposer",
    "PropagationState",
    "SamplingProbability",
    "consistent_probability_based",
    "generate_r",
    "parse_trace_state",
    "render_trace_state",
]

from ._configuration import ConsistentProbabilitySamplerFactory
from ._probability import ProbabilityDecomposer, SamplingProbability
from ._protocol import ConsistentSamplingProtocol
from ._sampler import ConsistentSampler, consistent_probability_based
from ._trace_state import (
    PropagationState,
    generate_r,
    parse_trace_state,
    render_trace_state,
)
