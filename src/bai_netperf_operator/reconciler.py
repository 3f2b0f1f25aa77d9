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
from typing import Optional

from kubernetes.client import V1OwnerReference, V1Pod

from bai_netperf_operator.errors import ResourceNotFoundError, StatusStoreError, WorkloadAlreadyExistsError
from bai_netperf_operator.events import Notification, NotificationKind
from bai_netperf_operator.observer import EventLevel, LoggingReconcileObserver, ReconcileEvent, ReconcileObserver
from bai_netperf_operator.resources import BenchmarkRequest, NetperfPhase, NETPERF_KIND
from bai_netperf_operator.result_parser import ParseError, parse_throughput
from bai_netperf_operator.status_store import StatusStore
from bai_netperf_operator.workload_factory import WorkloadFactory

# https://kubernetes.io/docs/concepts/workloads/pods/pod-lifecycle/#pod-phase
POD_PHASE_RUNNING = "Running"
POD_PHASE_SUCCEEDED = "Succeeded"
POD_PHASE_FAILED = "Failed"


class Reconciler:
    """
    Drives a Netperf through Initial -> Server -> Test -> Done (or Error).

    Each call to handle() takes at most one action: create the server pod, create the client pod, collect the
    result and delete both pods, mark the request as failed, or nothing. Any exception raised out of handle()
    means "deliver this notification again later".

    Nothing is remembered between notifications. Every decision is taken from the state that was just delivered
    or just fetched, and pod names are derived from the request UID, so repeated and out-of-order deliveries
    converge to the same result.
    """

    def __init__(
        self, store: StatusStore, workload_factory: WorkloadFactory, observer: Optional[ReconcileObserver] = None
    ):
        self.store = store
        self.workload_factory = workload_factory
        self.observer = observer or LoggingReconcileObserver()

    def handle(self, notification: Notification):
        if notification.kind == NotificationKind.BENCHMARK_REQUEST:
            self._handle_request_event(notification.obj, notification.deleted)
        elif notification.kind == NotificationKind.WORKLOAD:
            self._handle_workload_event(notification.obj, notification.deleted)
        elif notification.kind == NotificationKind.UNKNOWN:
            self._report(EventLevel.WARNING, "UnknownEvent", f"Unknown event received: {notification.obj!r}")
        else:
            raise ValueError(f"Unhandled notification kind: {notification.kind}")

    # Netperf events

    def _handle_request_event(self, request: BenchmarkRequest, deleted: bool):
        self._report(
            EventLevel.DEBUG,
            "RequestEvent",
            f"New Netperf event, deleted: {deleted}, status: {request.phase}",
            request,
        )
        if deleted:
            # Pods are owned by the request, the garbage collector removes them
            self._report(EventLevel.DEBUG, "RequestDeleted", "Netperf object is being deleted", request)
            return

        # The delivered copy may be a redelivery from before our own last update
        try:
            request = self.store.get_request(request.namespace, request.name)
        except ResourceNotFoundError:
            self._report(EventLevel.DEBUG, "RequestGone", "Netperf object no longer exists", request)
            return

        if request.phase in (NetperfPhase.INITIAL, NetperfPhase.SERVER_SCHEDULED):
            self._start_server(request)
        else:
            self._report(
                EventLevel.DEBUG,
                "NothingToDo",
                f"Nothing needed to do for update event in state {request.phase}",
                request,
            )

    def _start_server(self, request: BenchmarkRequest):
        server = self.workload_factory.build_server(request)
        server_name = server.metadata.name

        try:
            self.store.create_workload(server)
            self._report(EventLevel.INFO, "ServerCreated", f"New server pod {server_name} started", request)
        except WorkloadAlreadyExistsError:
            self._report(EventLevel.DEBUG, "ServerExists", f"Server pod {server_name} is already created", request)
        except StatusStoreError as e:
            self._report(EventLevel.ERROR, "ServerCreateFailed", f"Failed to create server pod: {e}", request)
            raise

        if request.status.server_pod == server_name:
            self._report(EventLevel.DEBUG, "ServerRegistered", f"Server pod {server_name} already registered", request)
            return

        self.store.update_request(request.with_status(status=NetperfPhase.SERVER_SCHEDULED, server_pod=server_name))

    # Pod events

    def _handle_workload_event(self, pod: V1Pod, deleted: bool):
        owner = self._get_netperf_owner(pod)
        if owner is None:
            return

        request = self._get_owner_request(pod, owner)
        if request is None:
            return

        if request.phase.final:
            self._report(
                EventLevel.DEBUG,
                "RequestFinished",
                f"Ignoring event of pod {pod.metadata.name}, request is already in state {request.phase}",
                request,
            )
            return

        pod_name = pod.metadata.name
        phase = pod.status.phase if pod.status else None
        pod_ip = pod.status.pod_ip if pod.status else None
        details = {"pod": pod_name, "phase": phase, "pod_ip": pod_ip, "deleted": deleted}

        if pod_name == request.status.client_pod:
            self._report(EventLevel.DEBUG, "ClientPodEvent", "Client pod event", request, details)
            self._handle_client_pod_event(request, pod)
        elif pod_name == request.status.server_pod:
            self._report(EventLevel.DEBUG, "ServerPodEvent", "Server pod event", request, details)
            self._handle_server_pod_event(request, pod, deleted)
        else:
            self._report(
                EventLevel.WARNING,
                "UnmatchedPod",
                f"Pod {pod_name} (uid {pod.metadata.uid}) is neither the server nor the client pod",
                request,
                details,
            )

    def _get_netperf_owner(self, pod: V1Pod) -> Optional[V1OwnerReference]:
        owners = [ref for ref in (pod.metadata.owner_references or []) if ref.kind == NETPERF_KIND]
        if not owners:
            self._report(
                EventLevel.DEBUG,
                "NoOwner",
                f"Pod {pod.metadata.namespace}/{pod.metadata.name} is not owned by a {NETPERF_KIND}",
            )
            return None

        owner = owners[0]
        if not owner.uid:
            self._report(
                EventLevel.WARNING,
                "OwnerUidUnknown",
                f"Pod {pod.metadata.namespace}/{pod.metadata.name} has owner of type {NETPERF_KIND}, "
                "but UID is unknown",
            )
        return owner

    def _get_owner_request(self, pod: V1Pod, owner: V1OwnerReference) -> Optional[BenchmarkRequest]:
        namespace = pod.metadata.namespace
        try:
            request = self.store.get_request(namespace, owner.name)
        except ResourceNotFoundError:
            self._report(
                EventLevel.WARNING,
                "OwnerNotFound",
                f"{NETPERF_KIND} {namespace}/{owner.name} defined as owner of pod {pod.metadata.name} does not exist",
            )
            return None
        except StatusStoreError as e:
            self._report(
                EventLevel.ERROR,
                "OwnerFetchFailed",
                f"Error trying to fetch {NETPERF_KIND} {namespace}/{owner.name} "
                f"defined as owner of pod {pod.metadata.name}: {e}",
            )
            raise

        if owner.uid and request.uid and owner.uid != request.uid:
            self._report(
                EventLevel.WARNING,
                "StaleOwner",
                f"Pod {pod.metadata.name} belongs to a previous {NETPERF_KIND} with uid {owner.uid}",
                request,
            )
            return None
        return request

    def _handle_server_pod_event(self, request: BenchmarkRequest, pod: V1Pod, deleted: bool = False):
        if deleted:
            # The last known status of a deleted pod may still say Running
            self._report(EventLevel.WARNING, "ServerDeleted", f"Server pod {pod.metadata.name} was deleted", request)
            return

        if pod.status is None or pod.status.phase != POD_PHASE_RUNNING:
            self._report(EventLevel.DEBUG, "ServerNotRunning", "Server pod is not running yet", request)
            return

        if request.status.client_pod:
            self._report(
                EventLevel.DEBUG, "ClientExists", "It seems client pod is already created, skipping creation", request
            )
            return

        client = self.workload_factory.build_client(request, pod.status.pod_ip)
        client_name = client.metadata.name

        try:
            self.store.create_workload(client)
            self._report(EventLevel.INFO, "ClientCreated", f"New client pod {client_name} started", request)
        except WorkloadAlreadyExistsError:
            self._report(EventLevel.DEBUG, "ClientExists", f"Client pod {client_name} is already created", request)
            if request.status.client_pod == client_name:
                return
        except StatusStoreError as e:
            self._report(EventLevel.ERROR, "ClientCreateFailed", f"Failed to create client pod: {e}", request)
            raise

        self.store.update_request(request.with_status(status=NetperfPhase.TESTING, client_pod=client_name))
        self._report(EventLevel.DEBUG, "ClientRegistered", f"Request updated with client pod {client_name}", request)

    def _handle_client_pod_event(self, request: BenchmarkRequest, pod: V1Pod):
        phase = pod.status.phase if pod.status else None

        if phase == POD_PHASE_RUNNING:
            self._report(EventLevel.DEBUG, "ClientRunning", "Client pod is running", request)
            return

        if phase == POD_PHASE_FAILED:
            # The request stays in Test: restarting or failing the benchmark is left to the user
            self._report(
                EventLevel.WARNING,
                "ClientFailed",
                f"Client pod {pod.metadata.name} failed, the benchmark will not complete",
                request,
            )
            return

        if phase != POD_PHASE_SUCCEEDED or request.phase == NetperfPhase.DONE:
            return

        self._report(EventLevel.DEBUG, "TestCompleted", "Test completed, parsing results", request)
        try:
            output = self.store.read_workload_log(pod)
        except ResourceNotFoundError as e:
            # The pod is gone along with its output, e.g. deleted by an earlier attempt
            self._report(EventLevel.ERROR, "ResultLost", f"Output of client pod is no longer available: {e}", request)
            self._mark_error(request)
            raise

        try:
            throughput = parse_throughput(output)
        except ParseError as e:
            self._report(EventLevel.ERROR, "ParseFailed", f"Error trying to convert test result: {e}", request)
            self._mark_error(request)
            raise

        try:
            server = self.store.get_workload(request.namespace, request.status.server_pod)
        except StatusStoreError as e:
            self._report(
                EventLevel.ERROR,
                "ServerFetchFailed",
                f"Error fetching pod {request.status.server_pod}: {e}. Won't delete Netperf.",
                request,
            )
            self._mark_error(request)
            raise

        self._report(EventLevel.DEBUG, "Cleanup", "Test completed, deleting resources", request)
        for workload in (pod, server):
            try:
                self.store.delete_workload(workload)
            except StatusStoreError as e:
                self._report(
                    EventLevel.ERROR, "DeleteFailed", f"Error deleting pod {workload.metadata.name}: {e}", request
                )
                self._mark_error(request)
                raise

        self.store.update_request(request.with_status(status=NetperfPhase.DONE, speed_bits_per_sec=throughput))
        self._report(
            EventLevel.INFO,
            "BenchmarkDone",
            f"Benchmark finished, throughput {throughput}",
            request,
            {"speed_bits_per_sec": throughput},
        )

    def _mark_error(self, request: BenchmarkRequest):
        try:
            self.store.update_request(request.with_status(status=NetperfPhase.ERROR))
        except StatusStoreError as e:
            # The failure that brought us here is the one that gets raised
            self._report(EventLevel.ERROR, "MarkErrorFailed", f"Failed to set status Error: {e}", request)

    def _report(self, level: EventLevel, reason: str, message: str, request: BenchmarkRequest = None, details=None):
        self.observer.notify(
            ReconcileEvent(
                level=level,
                reason=reason,
                message=message,
                request=f"{request.namespace}/{request.name}" if request else None,
                details=details or {},
            )
        )
