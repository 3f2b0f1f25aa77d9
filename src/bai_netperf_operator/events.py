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
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from kubernetes.client import V1Pod

from bai_netperf_operator.resources import BenchmarkRequest, NETPERF_KIND

WATCH_EVENT_DELETED = "DELETED"


class NotificationKind(Enum):
    BENCHMARK_REQUEST = "BenchmarkRequest"
    WORKLOAD = "Workload"
    UNKNOWN = "Unknown"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class Notification:
    """
    "Something about this object may have changed". Delivery is level-triggered and may be repeated.

    obj is a BenchmarkRequest for BENCHMARK_REQUEST, a V1Pod for WORKLOAD and whatever was received otherwise.
    """

    kind: NotificationKind
    obj: Any
    deleted: bool = False

    @classmethod
    def from_object(cls, obj: Any, deleted: bool = False) -> Notification:
        if isinstance(obj, BenchmarkRequest):
            return cls(NotificationKind.BENCHMARK_REQUEST, obj, deleted)
        if isinstance(obj, V1Pod):
            return cls(NotificationKind.WORKLOAD, obj, deleted)
        if isinstance(obj, dict) and obj.get("kind") == NETPERF_KIND:
            return cls(NotificationKind.BENCHMARK_REQUEST, BenchmarkRequest.from_custom_object(obj), deleted)
        return cls(NotificationKind.UNKNOWN, obj, deleted)

    @classmethod
    def from_watch_event(cls, event: Dict[str, Any]) -> Notification:
        return cls.from_object(event.get("object"), deleted=event.get("type") == WATCH_EVENT_DELETED)

    def key(self) -> Tuple[NotificationKind, Optional[str], Optional[str]]:
        """
        Identifies the object the notification is about. Notifications with the same key supersede each other.
        """
        if self.kind == NotificationKind.BENCHMARK_REQUEST:
            return self.kind, self.obj.namespace, self.obj.name
        if self.kind == NotificationKind.WORKLOAD:
            return self.kind, self.obj.metadata.namespace, self.obj.metadata.name
        return self.kind, None, None

    def describe(self) -> str:
        if self.kind == NotificationKind.BENCHMARK_REQUEST:
            name = f"{self.obj.namespace}/{self.obj.name}"
        elif self.kind == NotificationKind.WORKLOAD:
            name = f"{self.obj.metadata.namespace}/{self.obj.metadata.name}"
        else:
            name = type(self.obj).__name__
        return f"{self.kind} {name} (deleted: {self.deleted})"
