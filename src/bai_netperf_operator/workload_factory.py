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
import hashlib
from enum import Enum
from typing import Dict, List, Optional

import kubernetes

from bai_netperf_operator import SERVICE_NAME
from bai_netperf_operator.resources import BenchmarkRequest, NETPERF_API_VERSION, NETPERF_KIND

DEFAULT_NETPERF_IMAGE = "tailoredcloud/netperf:v2.7"

NETPERF_CLIENT_BINARY = "netperf"
NETPERF_HOST_ARG = "-H"


class WorkloadRole(Enum):
    SERVER = "server"
    CLIENT = "client"

    def __str__(self):
        return self.value


class RestartPolicy:
    ALWAYS = "Always"
    ON_FAILURE = "OnFailure"


class WorkloadFactory:
    APP_LABEL = "app"

    APP_LABEL_VALUE = "netperf-operator"

    ROLE_LABEL = "netperf-type"

    CREATED_BY_LABEL = "created-by"

    NAME_PREFIX = "bench-"

    HOSTNAME_TOPOLOGY_KEY = "kubernetes.io/hostname"

    # A UID looks like 2f9b3a1e-5c7d-4e8f-9a0b-1c2d3e4f5a6b, the suffix is its last group
    UID_DELIMITER = "-"
    UID_FRAGMENT_INDEX = 4
    UID_HASH_LENGTH = 12

    def __init__(self, image: str = DEFAULT_NETPERF_IMAGE):
        self.image = image

    def build_workload(
        self,
        request: BenchmarkRequest,
        role: WorkloadRole,
        restart_policy: str,
        command: Optional[List[str]] = None,
    ) -> kubernetes.client.V1Pod:
        name = self.get_workload_name(request, role)

        metadata = kubernetes.client.V1ObjectMeta(
            name=name,
            namespace=request.namespace,
            labels=self.get_labels(role),
            owner_references=[self.get_owner_reference(request)],
        )

        container = kubernetes.client.V1Container(name=name, image=self.image, command=command or None)

        pod_spec = kubernetes.client.V1PodSpec(
            containers=[container],
            restart_policy=restart_policy,
            affinity=self.get_affinity(request, role),
        )

        return kubernetes.client.V1Pod(api_version="v1", kind="Pod", metadata=metadata, spec=pod_spec)

    def build_server(self, request: BenchmarkRequest) -> kubernetes.client.V1Pod:
        return self.build_workload(request, WorkloadRole.SERVER, RestartPolicy.ALWAYS)

    def build_client(self, request: BenchmarkRequest, server_address: str) -> kubernetes.client.V1Pod:
        command = [NETPERF_CLIENT_BINARY, NETPERF_HOST_ARG, server_address]
        return self.build_workload(request, WorkloadRole.CLIENT, RestartPolicy.ON_FAILURE, command)

    @staticmethod
    def get_workload_name(request: BenchmarkRequest, role: WorkloadRole) -> str:
        fragments = request.uid.split(WorkloadFactory.UID_DELIMITER)
        if len(fragments) > WorkloadFactory.UID_FRAGMENT_INDEX:
            suffix = fragments[WorkloadFactory.UID_FRAGMENT_INDEX]
        else:
            # Not a UUID-shaped UID, fall back to a digest of all of it
            suffix = hashlib.md5(request.uid.encode("utf-8")).hexdigest()[: WorkloadFactory.UID_HASH_LENGTH]
        return f"{WorkloadFactory.NAME_PREFIX}{role.value}-{suffix}"

    @staticmethod
    def get_labels(role: WorkloadRole) -> Dict[str, str]:
        return {
            WorkloadFactory.APP_LABEL: WorkloadFactory.APP_LABEL_VALUE,
            WorkloadFactory.ROLE_LABEL: role.value,
            WorkloadFactory.CREATED_BY_LABEL: SERVICE_NAME,
        }

    @staticmethod
    def get_label_selector() -> str:
        return f"{WorkloadFactory.APP_LABEL}={WorkloadFactory.APP_LABEL_VALUE}"

    @staticmethod
    def get_owner_reference(request: BenchmarkRequest) -> kubernetes.client.V1OwnerReference:
        return kubernetes.client.V1OwnerReference(
            api_version=NETPERF_API_VERSION,
            kind=NETPERF_KIND,
            name=request.name,
            uid=request.uid,
            controller=True,
            block_owner_deletion=True,
        )

    @staticmethod
    def get_affinity(request: BenchmarkRequest, role: WorkloadRole) -> Optional[kubernetes.client.V1Affinity]:
        if role == WorkloadRole.SERVER:
            node_name = request.spec.server_node
        else:
            node_name = request.spec.client_node

        if not node_name:
            return None

        requirement = kubernetes.client.V1NodeSelectorRequirement(
            key=WorkloadFactory.HOSTNAME_TOPOLOGY_KEY, operator="In", values=[node_name]
        )
        return kubernetes.client.V1Affinity(
            node_affinity=kubernetes.client.V1NodeAffinity(
                required_during_scheduling_ignored_during_execution=kubernetes.client.V1NodeSelector(
                    node_selector_terms=[kubernetes.client.V1NodeSelectorTerm(match_expressions=[requirement])]
                )
            )
        )
