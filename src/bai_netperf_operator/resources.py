#  Copyright 2019 Amazon.com, Inc. or its affiliates. All Rights Reserved.
#
#  Licensed under the Apache License, Version 2.0 (the "License").
#  You may not use this file except in compliance with the License.
#  A copy of the License is located at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
#  or in the "license" file accompanying this file. This file is distributed
#  on an "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either
#  express or implied. See the License for the specific language governing
#  permissions and limitations under the License.
import copy
import dataclasses
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from dataclasses_json import LetterCase, dataclass_json

NETPERF_GROUP = "app.example.com"
NETPERF_VERSION = "v1alpha1"
NETPERF_API_VERSION = f"{NETPERF_GROUP}/{NETPERF_VERSION}"
NETPERF_KIND = "Netperf"
NETPERF_PLURAL = "netperfs"


class NetperfPhase(Enum):
    def __new__(cls, val: str, final: bool):
        obj = object.__new__(cls)
        obj._value_ = val
        obj.final = final
        return obj

    # A freshly created Netperf has no status at all
    INITIAL = "", False
    SERVER_SCHEDULED = "Server", False
    TESTING = "Test", False
    DONE = "Done", True
    ERROR = "Error", True

    def __str__(self):
        return self.value or "Initial"


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class NetperfSpec:
    server_node: Optional[str] = None
    client_node: Optional[str] = None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class NetperfStatus:
    status: NetperfPhase = NetperfPhase.INITIAL
    server_pod: str = ""
    client_pod: str = ""
    # Only meaningful once status is DONE
    speed_bits_per_sec: float = 0.0


@dataclass(frozen=True)
class BenchmarkRequest:
    """
    In-memory view of a Netperf custom object.

    Instances are never mutated: status changes go through with_status(), which returns a clone. The raw
    object received from the cluster is carried along so that writing the request back preserves every
    field the operator does not own.
    """

    name: str
    namespace: str
    uid: str
    spec: NetperfSpec = field(default_factory=NetperfSpec)
    status: NetperfStatus = field(default_factory=NetperfStatus)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def phase(self) -> NetperfPhase:
        return self.status.status

    @classmethod
    def from_custom_object(cls, obj: Dict[str, Any]) -> "BenchmarkRequest":
        metadata = obj.get("metadata") or {}
        return cls(
            name=metadata.get("name"),
            namespace=metadata.get("namespace"),
            uid=metadata.get("uid") or "",
            spec=NetperfSpec.from_dict(obj.get("spec") or {}),
            status=NetperfStatus.from_dict(obj.get("status") or {}),
            raw=copy.deepcopy(obj),
        )

    def to_custom_object(self) -> Dict[str, Any]:
        obj = copy.deepcopy(self.raw)
        obj.setdefault("apiVersion", NETPERF_API_VERSION)
        obj.setdefault("kind", NETPERF_KIND)

        metadata = obj.setdefault("metadata", {})
        metadata["name"] = self.name
        metadata["namespace"] = self.namespace
        if self.uid:
            metadata["uid"] = self.uid

        if "spec" not in obj:
            obj["spec"] = {k: v for k, v in self.spec.to_dict().items() if v is not None}
        # to_json takes care of turning the phase back into its wire value
        obj["status"] = json.loads(self.status.to_json())
        return obj

    def with_status(self, **changes) -> "BenchmarkRequest":
        return dataclasses.replace(self, status=dataclasses.replace(self.status, **changes))
