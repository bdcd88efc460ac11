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
from typing import Protocol


class ConsistentSamplingProtocol(Protocol):
    def threshold_exponent(self, rng: Random) -> int:
        """Returns the exponent ``p`` to use for a single sampling decision.

        A span is kept with probability ``2**-p`` when the exponent is
        compared against the trace's randomness value ``r``.
        """
        ...

    def get_description(self) -> str:
        """Returns a description of the sampler."""
        ...
