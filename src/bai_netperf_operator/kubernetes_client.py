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
from pathlib import Path

import kubernetes

from bai_netperf_operator import service_logger

logger = service_logger.getChild(__name__)


def load_kubernetes_config(kubeconfig=None):
    if kubeconfig is not None:
        kubeconfig = Path(kubeconfig)
    else:
        kubeconfig = Path.home().joinpath(".bai", "kubeconfig")

    if kubeconfig.exists():
        logger.info(f"Loading kubeconfig from {kubeconfig}")
        kubernetes.config.load_kube_config(str(kubeconfig))
    else:
        logger.info("Loading kubeconfig from incluster")
        kubernetes.config.load_incluster_config()


def create_kubernetes_api_client(kubeconfig=None) -> kubernetes.client.ApiClient:
    logger.info("Initializing with KUBECONFIG=%s", kubeconfig)
    load_kubernetes_config(kubeconfig)
    # Picks up the configuration loaded above as the default one
    return kubernetes.client.ApiClient()
