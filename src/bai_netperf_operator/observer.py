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
import abc
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from bai_netperf_operator import service_logger


class EventLevel(Enum):
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR


@dataclass(frozen=True)
class ReconcileEvent:
    level: EventLevel
    reason: str
    message: str
    request: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class ReconcileObserver(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def notify(self, event: ReconcileEvent):
        pass


class LoggingReconcileObserver(ReconcileObserver):
    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or service_logger.getChild("reconciler")

    def notify(self, event: ReconcileEvent):
        prefix = f"[{event.request}] " if event.request else ""
        self.logger.log(event.level.value, f"{prefix}{event.reason}: {event.message}")
        if event.details:
            self.logger.debug(f"{prefix}{event.reason} details: {event.details}")
