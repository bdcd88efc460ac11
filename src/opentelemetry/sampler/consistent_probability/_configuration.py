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

from opentelemetry.sampler.consistent_probability._sampler import (
    ConsistentSampler,
    consistent_probability_based,
)
from opentelemetry.sdk.trace.sampling import ParentBased, Sampler

_logger = getLogger(__name__)

DEFAULT_PROBABILITY = 1.0


def _probability_from_argument(sampler_argument: str) -> float:
    try:
        return float(sampler_argument)
    except (ValueError, TypeError):
        _logger.warning(
            "Could not convert OTEL_TRACES_SAMPLER_ARG %r to float. Defaulting to %s",
            sampler_argument,
            DEFAULT_PROBABILITY,
        )
        return DEFAULT_PROBABILITY


class ConsistentProbabilitySamplerFactory:
    """Builds samplers from ``OTEL_TRACES_SAMPLER_ARG``.

    Registered under the ``opentelemetry_traces_sampler`` entry point group,
    so that setting ``OTEL_TRACES_SAMPLER=consistent_probability`` and
    ``OTEL_TRACES_SAMPLER_ARG=0.1`` configures the SDK with a
    `ConsistentSampler` keeping 10% of the traces.
    """

    @staticmethod
    def get_sampler(sampler_argument: str) -> ConsistentSampler:
        return consistent_probability_based(
            _probability_from_argument(sampler_argument)
        )

    @staticmethod
    def get_parent_based_sampler(sampler_argument: str) -> Sampler:
        return ParentBased(
            ConsistentProbabilitySamplerFactory.get_sampler(sampler_argument)
        )
