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
from contextlib import contextmanager
from http import HTTPStatus

import kubernetes
import urllib3
from kubernetes.client import CoreV1Api, CustomObjectsApi, V1Pod
from kubernetes.client.rest import ApiException

from bai_netperf_operator import service_logger
from bai_netperf_operator.errors import ResourceNotFoundError, StatusStoreError, WorkloadAlreadyExistsError
from bai_netperf_operator.resources import BenchmarkRequest, NETPERF_GROUP, NETPERF_PLURAL, NETPERF_VERSION

logger = service_logger.getChild(__name__)

DEFAULT_API_TIMEOUT_SECONDS = 30


class StatusStore(metaclass=abc.ABCMeta):
    """
    Everything the reconciler reads from or writes to the cluster.

    Failures are raised as StatusStoreError (or one of its subclasses) and are considered transient.
    """

    @abc.abstractmethod
    def get_request(self, namespace: str, name: str) -> BenchmarkRequest:
        pass

    @abc.abstractmethod
    def update_request(self, request: BenchmarkRequest) -> BenchmarkRequest:
        pass

    @abc.abstractmethod
    def create_workload(self, pod: V1Pod) -> V1Pod:
        """
        :raises WorkloadAlreadyExistsError: when a pod with the same name is already there
        """
        pass

    @abc.abstractmethod
    def get_workload(self, namespace: str, name: str) -> V1Pod:
        pass

    @abc.abstractmethod
    def delete_workload(self, pod: V1Pod):
        pass

    @abc.abstractmethod
    def read_workload_log(self, pod: V1Pod) -> str:
        pass


@contextmanager
def _translate_api_errors(action: str):
    try:
        yield
    except ApiException as e:
        if e.status == HTTPStatus.NOT_FOUND:
            raise ResourceNotFoundError(f"Failed to {action}: not found", e.status) from e
        raise StatusStoreError(f"Failed to {action}: {e.status} {e.reason}", e.status) from e
    except urllib3.exceptions.HTTPError as e:
        # Includes timeouts
        raise StatusStoreError(f"Failed to {action}: {e}") from e


class KubernetesStatusStore(StatusStore):
    def __init__(
        self,
        api_client: kubernetes.client.ApiClient = None,
        *,
        request_timeout: int = DEFAULT_API_TIMEOUT_SECONDS,
        status_subresource: bool = False,
    ):
        self.custom_objects_api = CustomObjectsApi(api_client)
        self.core_api = CoreV1Api(api_client)
        self.request_timeout = request_timeout
        self.status_subresource = status_subresource

    def get_request(self, namespace: str, name: str) -> BenchmarkRequest:
        with _translate_api_errors(f"get netperf {namespace}/{name}"):
            obj = self.custom_objects_api.get_namespaced_custom_object(
                NETPERF_GROUP, NETPERF_VERSION, namespace, NETPERF_PLURAL, name, _request_timeout=self.request_timeout
            )
        return BenchmarkRequest.from_custom_object(obj)

    def update_request(self, request: BenchmarkRequest) -> BenchmarkRequest:
        body = request.to_custom_object()
        logger.debug(f"Writing netperf {request.namespace}/{request.name} with status {body['status']}")

        if self.status_subresource:
            replace = self.custom_objects_api.replace_namespaced_custom_object_status
        else:
            replace = self.custom_objects_api.replace_namespaced_custom_object

        with _translate_api_errors(f"update netperf {request.namespace}/{request.name}"):
            obj = replace(
                NETPERF_GROUP,
                NETPERF_VERSION,
                request.namespace,
                NETPERF_PLURAL,
                request.name,
                body,
                _request_timeout=self.request_timeout,
            )
        return BenchmarkRequest.from_custom_object(obj)

    def create_workload(self, pod: V1Pod) -> V1Pod:
        namespace, name = pod.metadata.namespace, pod.metadata.name
        try:
            with _translate_api_errors(f"create pod {namespace}/{name}"):
                return self.core_api.create_namespaced_pod(namespace, pod, _request_timeout=self.request_timeout)
        except StatusStoreError as e:
            if e.status == HTTPStatus.CONFLICT:
                raise WorkloadAlreadyExistsError(f"Pod {namespace}/{name} already exists", e.status) from e
            raise

    def get_workload(self, namespace: str, name: str) -> V1Pod:
        with _translate_api_errors(f"get pod {namespace}/{name}"):
            return self.core_api.read_namespaced_pod(name, namespace, _request_timeout=self.request_timeout)

    def delete_workload(self, pod: V1Pod):
        namespace, name = pod.metadata.namespace, pod.metadata.name
        with _translate_api_errors(f"delete pod {namespace}/{name}"):
            resp = self.core_api.delete_namespaced_pod(name, namespace, _request_timeout=self.request_timeout)
        logger.debug("k8s response: %s", resp)

    def read_workload_log(self, pod: V1Pod) -> str:
        namespace, name = pod.metadata.namespace, pod.metadata.name
        with _translate_api_errors(f"read log of pod {namespace}/{name}"):
            return self.core_api.read_namespaced_pod_log(name, namespace, _request_timeout=self.request_timeout)
