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
import itertools
import queue
import time
from signal import signal, SIGTERM
from threading import Event, Lock, Thread, Timer
from typing import Callable, Dict, List, Tuple

import kubernetes
from kubernetes.client import CoreV1Api, CustomObjectsApi

from bai_netperf_operator import service_logger
from bai_netperf_operator.args import NetperfOperatorConfig
from bai_netperf_operator.events import Notification
from bai_netperf_operator.kubernetes_client import create_kubernetes_api_client
from bai_netperf_operator.observer import LoggingReconcileObserver
from bai_netperf_operator.reconciler import Reconciler
from bai_netperf_operator.resources import NETPERF_GROUP, NETPERF_PLURAL, NETPERF_VERSION
from bai_netperf_operator.status_store import KubernetesStatusStore
from bai_netperf_operator.workload_factory import WorkloadFactory

logger = service_logger.getChild(__name__)

QUEUE_POLL_INTERVAL_SECONDS = 0.5
SLEEP_TIME_BEFORE_RESTARTING_WATCH = 5

WATCH_EVENT_ERROR = "ERROR"

NotificationCallback = Callable[[Notification], None]


class ResourceWatcher:
    """
    Streams the changes of one kind of object into a callback, from a thread of its own.

    A watch ends on its own after timeout_seconds or when the API server expires it. It is then simply started
    again: the initial listing replays every existing object, which is harmless since handling is idempotent.
    """

    def __init__(
        self,
        name: str,
        list_func: Callable,
        callback: NotificationCallback,
        *list_args,
        watch_timeout: int,
        **list_kwargs,
    ):
        self.name = name
        self._list_func = list_func
        self._list_args = list_args
        self._list_kwargs = list_kwargs
        self._callback = callback
        self._watch_timeout = watch_timeout
        self._watch = kubernetes.watch.Watch()
        self._stopped = Event()
        self._thread = Thread(target=self._thread_run_loop, daemon=True, name=f"k8s-watcher-{name}")

    def start(self):
        self._thread.start()

    def stop(self):
        self._stopped.set()
        self._watch.stop()

    def _thread_run_loop(self):
        # Use itertools.count() so that tests can mock the infinite loop
        for _ in itertools.count():
            if self._stopped.is_set():
                return
            try:
                self._stream()
            except Exception:
                logger.exception(f"Watch on {self.name} failed, restarting it")
                time.sleep(SLEEP_TIME_BEFORE_RESTARTING_WATCH)

    def _stream(self):
        logger.debug(f"Starting watch on {self.name}")
        for event in self._watch.stream(
            self._list_func, *self._list_args, timeout_seconds=self._watch_timeout, **self._list_kwargs
        ):
            if event.get("type") == WATCH_EVENT_ERROR:
                logger.warning(f"Watch on {self.name} returned an error: {event.get('raw_object')}")
                return
            try:
                notification = Notification.from_watch_event(event)
            except Exception:
                # One malformed object must not stall the whole watch
                logger.exception(f"Dropping undecodable {self.name} event: {event.get('raw_object')}")
                continue
            self._callback(notification)


class NotificationDispatcher:
    """
    Feeds notifications to the reconciler, one at a time, from the thread that runs run_loop().

    A notification whose handling raised is delivered again after retry_delay seconds. Only the newest failed
    notification of an object waits for redelivery, and a successful handling of the object cancels it.
    """

    class LoopAlreadyRunningException(Exception):
        pass

    class LoopNotRunningException(Exception):
        pass

    _LOOP_IS_ALREADY_RUNNING = "Loop is already running"
    _IS_NOT_RUNNING = "Loop is not running"

    def __init__(self, reconciler: Reconciler, retry_delay: float):
        self._reconciler = reconciler
        self._retry_delay = retry_delay
        self._queue = queue.Queue()
        self._watchers: List[ResourceWatcher] = []
        self._running = False
        # At most one pending redelivery per object, the newest one
        self._pending: Dict[Tuple, Tuple[Timer, Notification]] = {}
        self._pending_lock = Lock()

    def add_watcher(self, watcher: ResourceWatcher):
        if self._running:
            raise NotificationDispatcher.LoopAlreadyRunningException(NotificationDispatcher._LOOP_IS_ALREADY_RUNNING)
        self._watchers.append(watcher)

    def submit(self, notification: Notification):
        self._queue.put(notification)

    def safe_handle(self, notification: Notification):
        # noinspection PyBroadException
        try:
            self._reconciler.handle(notification)
        except Exception:
            logger.exception(f"Failed to handle {notification.describe()}, delivering it again in {self._retry_delay}s")
            self._redeliver(notification)
        else:
            self._cancel_redelivery(notification.key())

    @property
    def pending_redeliveries(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def _redeliver(self, notification: Notification):
        key = notification.key()
        timer = Timer(self._retry_delay, self._redeliver_now, args=(key, notification))
        timer.daemon = True
        with self._pending_lock:
            previous = self._pending.get(key)
            if previous is not None:
                previous[0].cancel()
            self._pending[key] = (timer, notification)
        timer.start()

    def _redeliver_now(self, key: Tuple, notification: Notification):
        with self._pending_lock:
            pending = self._pending.get(key)
            if pending is None or pending[1] is not notification:
                # Superseded by a newer notification for the same object
                return
            del self._pending[key]
        self.submit(notification)

    def _cancel_redelivery(self, key: Tuple):
        with self._pending_lock:
            pending = self._pending.pop(key, None)
        if pending is not None:
            pending[0].cancel()

    def _cancel_all_redeliveries(self):
        with self._pending_lock:
            pending, self._pending = list(self._pending.values()), {}
        for timer, _ in pending:
            timer.cancel()

    @property
    def running(self) -> bool:
        return self._running

    def run_loop(self):
        if self._running:
            raise NotificationDispatcher.LoopAlreadyRunningException(NotificationDispatcher._LOOP_IS_ALREADY_RUNNING)

        self._running = True
        signal(SIGTERM, lambda signum, frame: self.stop_loop())

        for watcher in self._watchers:
            watcher.start()

        while self._running:
            try:
                notification = self._queue.get(timeout=QUEUE_POLL_INTERVAL_SECONDS)
            except queue.Empty:
                continue
            logger.debug(f"Processing {notification.describe()}")
            self.safe_handle(notification)

        for watcher in self._watchers:
            watcher.stop()
        self._cancel_all_redeliveries()

    def stop_loop(self):
        if not self._running:
            raise NotificationDispatcher.LoopNotRunningException(NotificationDispatcher._IS_NOT_RUNNING)

        self._running = False


def create_dispatcher(config: NetperfOperatorConfig) -> NotificationDispatcher:
    api_client = create_kubernetes_api_client(config.kubeconfig)

    store = KubernetesStatusStore(
        api_client, request_timeout=config.api_timeout, status_subresource=config.status_subresource
    )
    reconciler = Reconciler(store, WorkloadFactory(config.netperf_image), LoggingReconcileObserver())
    dispatcher = NotificationDispatcher(reconciler, config.retry_delay)

    dispatcher.add_watcher(
        ResourceWatcher(
            NETPERF_PLURAL,
            CustomObjectsApi(api_client).list_namespaced_custom_object,
            dispatcher.submit,
            NETPERF_GROUP,
            NETPERF_VERSION,
            config.namespace,
            NETPERF_PLURAL,
            watch_timeout=config.watch_timeout,
        )
    )
    dispatcher.add_watcher(
        ResourceWatcher(
            "pods",
            CoreV1Api(api_client).list_namespaced_pod,
            dispatcher.submit,
            config.namespace,
            watch_timeout=config.watch_timeout,
            label_selector=WorkloadFactory.get_label_selector(),
        )
    )
    return dispatcher
