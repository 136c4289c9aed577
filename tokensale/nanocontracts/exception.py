# Copyright 2025 Hathor Labs
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


class NanoContractError(Exception):
    """Base class for every error raised by the contract runtime."""


class NCFail(NanoContractError):
    """Raised by blueprint code to abort the current call.

    The runner reverts every change made during the call before re-raising it.
    """


class NCInvalidAction(NCFail):
    """The call carries actions the method does not accept."""


class NCInsufficientFunds(NCFail):
    """A transfer would leave a holder with a negative balance."""


class NCMethodNotFound(NCFail):
    """The method does not exist or is not exposed with the expected decorator."""


class NCViewMethodError(NCFail):
    """A view method tried to change contract state."""


class NCUninitializedContractError(NCFail):
    """A contract field was read before being set."""


class NanoContractDoesNotExist(NanoContractError):
    pass


class NanoContractAlreadyExists(NanoContractError):
    pass


class BlueprintDoesNotExist(NanoContractError):
    pass


class TokenDoesNotExist(NCFail):
    pass
