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

from dataclasses import dataclass
from math import frexp, ldexp
from random import Random
from typing import Dict, Union

# Probabilities below this cannot be expressed with an r value in [0, 62].
MIN_PROBABILITY = ldexp(1.0, -62)

# p value that never samples, since r never exceeds 62.
NEVER_SAMPLE_P = 63


@dataclass(frozen=True)
class SamplingProbability:
    """A target probability split into two adjacent powers of two.

    ``mix_weight`` is the probability of using ``p_ceil`` (keeps more spans)
    rather than ``p_floor`` (keeps less spans), chosen so that
    ``mix_weight * 2**-p_ceil + (1 - mix_weight) * 2**-p_floor`` equals the
    target probability.
    """

    p_floor: int
    p_ceil: int
    mix_weight: float


def _decompose(probability: float) -> SamplingProbability:
    if probability < MIN_PROBABILITY:
        return SamplingProbability(
            p_floor=NEVER_SAMPLE_P, p_ceil=0, mix_weight=0.0
        )

    p_floor = abs(frexp(probability)[1] - 1)
    # a lower value of p samples more spans
    p_ceil = p_floor - 1
    floor_probability = ldexp(1.0, -p_floor)
    ceil_probability = ldexp(1.0, -p_ceil)
    mix_weight = (probability - floor_probability) / (
        ceil_probability - floor_probability
    )
    return SamplingProbability(
        p_floor=p_floor, p_ceil=p_ceil, mix_weight=mix_weight
    )


class ProbabilityDecomposer:
    """Decomposes a sampling probability for consistent sampling.

    Args:
        probability: Probability (between 0 and 1) that a span will be sampled
    """

    def __init__(self, probability: float):
        if not 0.0 <= probability <= 1.0:
            raise ValueError("Probability must be in range [0.0, 1.0].")
        self._probability = probability
        self._sampling_probability = _decompose(probability)
        if probability < MIN_PROBABILITY:
            self._description = "ConsistentProbabilityBased{0}"
        else:
            self._description = (
                f"ConsistentProbabilityBased{{{probability:.6f}}}"
            )

    @property
    def probability(self) -> float:
        return self._probability

    @property
    def sampling_probability(self) -> SamplingProbability:
        return self._sampling_probability

    @property
    def p_floor(self) -> int:
        return self._sampling_probability.p_floor

    @property
    def p_ceil(self) -> int:
        return self._sampling_probability.p_ceil

    @property
    def mix_weight(self) -> float:
        return self._sampling_probability.mix_weight

    @property
    def description(self) -> str:
        return self._description

    def get_description(self) -> str:
        return self._description

    def probability_values(self) -> Dict[str, Union[int, float]]:
        """Returns the decomposition keyed the way other SDKs report it."""
        if self._probability < MIN_PROBABILITY:
            return {
                "p_that_keeps_less_spans": NEVER_SAMPLE_P,
                "p_that_keeps_more_spans": 0,
                "prob_of_using_p_that_keeps_less_spans": 0,
            }

        less_spans = ldexp(1.0, -self.p_floor)
        more_spans = ldexp(1.0, -self.p_ceil)
        return {
            "p_that_keeps_less_spans": self.p_floor,
            "p_that_keeps_more_spans": self.p_ceil,
            "prob_of_using_p_that_keeps_less_spans": (
                more_spans - self._probability
            )
            / (more_spans - less_spans),
        }

    def threshold_exponent(self, rng: Random) -> int:
        if rng.random() < self.mix_weight:
            return self.p_ceil
        return self.p_floor

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProbabilityDecomposer):
            return NotImplemented
        return self._description == other.description

    def __hash__(self) -> int:
        return hash(self._description)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._probability!r})"
