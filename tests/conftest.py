import copy
from typing import Dict, List, Tuple

import pytest
from kubernetes.client import V1ObjectMeta, V1OwnerReference, V1Pod, V1PodStatus

from bai_netperf_operator.errors import ResourceNotFoundError, WorkloadAlreadyExistsError
from bai_netperf_operator.observer import ReconcileEvent, ReconcileObserver
from bai_netperf_operator.resources import BenchmarkRequest, NETPERF_API_VERSION, NETPERF_KIND
from bai_netperf_operator.status_store import StatusStore

NAMESPACE = "benchmarks"
REQUEST_NAME = "netperf-sample"
REQUEST_UID = "2f9b3a1e-5c7d-4e8f-9a0b-1c2d3e4f5a6b"
UID_SUFFIX = "1c2d3e4f5a6b"

SERVER_POD_NAME = f"bench-server-{UID_SUFFIX}"
CLIENT_POD_NAME = f"bench-client-{UID_SUFFIX}"

SERVER_IP = "10.1.2.3"

NETPERF_OUTPUT = (
    "MIGRATED TCP STREAM TEST from 0.0.0.0 (0.0.0.0) port 0 AF_INET to 10.1.2.3 () port 0 AF_INET\n"
    "Recv   Send    Send\n"
    "Socket Socket  Message  Elapsed\n"
    "Size   Size    Size     Time     Throughput\n"
    "bytes  bytes   bytes    secs.    10^6bits/sec\n"
    "\n"
    " 87380  16384  16384    10.02     941.23\n"
)
THROUGHPUT = 941.23


def netperf_object(status: dict = None, spec: dict = None, uid: str = REQUEST_UID) -> dict:
    obj = {
        "apiVersion": NETPERF_API_VERSION,
        "kind": NETPERF_KIND,
        "metadata": {"name": REQUEST_NAME, "namespace": NAMESPACE, "uid": uid, "resourceVersion": "42"},
        "spec": spec or {},
    }
    if status is not None:
        obj["status"] = status
    return obj


def make_request(status: dict = None, spec: dict = None, uid: str = REQUEST_UID) -> BenchmarkRequest:
    return BenchmarkRequest.from_custom_object(netperf_object(status, spec, uid))


def make_pod(
    name: str,
    phase: str = None,
    pod_ip: str = None,
    owner_name: str = REQUEST_NAME,
    owner_uid: str = REQUEST_UID,
    owner_kind: str = NETPERF_KIND,
) -> V1Pod:
    owners = None
    if owner_kind:
        owners = [V1OwnerReference(api_version=NETPERF_API_VERSION, kind=owner_kind, name=owner_name, uid=owner_uid)]
    return V1Pod(
        metadata=V1ObjectMeta(name=name, namespace=NAMESPACE, uid=f"uid-{name}", owner_references=owners),
        status=V1PodStatus(phase=phase, pod_ip=pod_ip),
    )


class RecordingObserver(ReconcileObserver):
    def __init__(self):
        self.events: List[ReconcileEvent] = []

    def notify(self, event: ReconcileEvent):
        self.events.append(event)

    @property
    def reasons(self) -> List[str]:
        return [event.reason for event in self.events]


class InMemoryStatusStore(StatusStore):
    """
    Holds requests and pods in dicts. Pods created here stay Pending until a test moves them along.
    """

    def __init__(self):
        self.requests: Dict[Tuple[str, str], BenchmarkRequest] = {}
        self.pods: Dict[Tuple[str, str], V1Pod] = {}
        self.logs: Dict[Tuple[str, str], str] = {}
        self.created: List[str] = []
        self.deleted: List[str] = []
        self.phase_history: List = []

    def add_request(self, request: BenchmarkRequest):
        self.requests[(request.namespace, request.name)] = request
        self.phase_history.append(request.phase)

    def request(self, namespace: str = NAMESPACE, name: str = REQUEST_NAME) -> BenchmarkRequest:
        return self.requests[(namespace, name)]

    def set_pod_status(self, name: str, phase: str, pod_ip: str = None, namespace: str = NAMESPACE) -> V1Pod:
        pod = self.pods[(namespace, name)]
        pod.status = V1PodStatus(phase=phase, pod_ip=pod_ip)
        return copy.deepcopy(pod)

    def get_request(self, namespace: str, name: str) -> BenchmarkRequest:
        if (namespace, name) not in self.requests:
            raise ResourceNotFoundError(f"netperf {namespace}/{name} not found", 404)
        return self.requests[(namespace, name)]

    def update_request(self, request: BenchmarkRequest) -> BenchmarkRequest:
        stored = BenchmarkRequest.from_custom_object(request.to_custom_object())
        self.add_request(stored)
        return stored

    def create_workload(self, pod: V1Pod) -> V1Pod:
        key = (pod.metadata.namespace, pod.metadata.name)
        if key in self.pods:
            raise WorkloadAlreadyExistsError(f"pod {key} already exists", 409)
        created = copy.deepcopy(pod)
        created.status = V1PodStatus(phase="Pending")
        self.pods[key] = created
        self.created.append(pod.metadata.name)
        return copy.deepcopy(created)

    def get_workload(self, namespace: str, name: str) -> V1Pod:
        if (namespace, name) not in self.pods:
            raise ResourceNotFoundError(f"pod {namespace}/{name} not found", 404)
        return copy.deepcopy(self.pods[(namespace, name)])

    def delete_workload(self, pod: V1Pod):
        key = (pod.metadata.namespace, pod.metadata.name)
        if key not in self.pods:
            raise ResourceNotFoundError(f"pod {key} not found", 404)
        del self.pods[key]
        self.deleted.append(pod.metadata.name)

    def read_workload_log(self, pod: V1Pod) -> str:
        key = (pod.metadata.namespace, pod.metadata.name)
        if key not in self.pods:
            raise ResourceNotFoundError(f"pod {key} not found", 404)
        return self.logs.get(key, "")


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def store() -> InMemoryStatusStore:
    return InMemoryStatusStore()
