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
import os
from dataclasses import dataclass
from typing import Optional

from configargparse import ArgParser

from bai_netperf_operator import SERVICE_NAME
from bai_netperf_operator.status_store import DEFAULT_API_TIMEOUT_SECONDS
from bai_netperf_operator.workload_factory import DEFAULT_NETPERF_IMAGE

DEFAULT_RETRY_DELAY_SECONDS = 5
DEFAULT_WATCH_TIMEOUT_SECONDS = 300


@dataclass
class NetperfOperatorConfig:
    namespace: str = "default"
    netperf_image: str = DEFAULT_NETPERF_IMAGE
    kubeconfig: Optional[str] = None
    api_timeout: int = DEFAULT_API_TIMEOUT_SECONDS
    retry_delay: int = DEFAULT_RETRY_DELAY_SECONDS
    watch_timeout: int = DEFAULT_WATCH_TIMEOUT_SECONDS
    status_subresource: bool = False
    logging_level: str = "INFO"
    service_logging_level: str = "INFO"


def _str_to_bool(value: str) -> bool:
    return str(value).lower() in ("1", "true", "yes", "on")


# We ignore unrecognized objects at the moment
def get_netperf_operator_config(args) -> NetperfOperatorConfig:
    parser = ArgParser(auto_env_var_prefix="", prog=SERVICE_NAME)

    parser.add_argument("--namespace", env_var="NAMESPACE", default="default")

    parser.add_argument("--netperf-image", env_var="NETPERF_IMAGE", default=DEFAULT_NETPERF_IMAGE)

    parser.add_argument("--kubeconfig", env_var="KUBECONFIG")

    parser.add_argument("--api-timeout", env_var="API_TIMEOUT", type=int, default=DEFAULT_API_TIMEOUT_SECONDS)

    parser.add_argument("--retry-delay", env_var="RETRY_DELAY", type=int, default=DEFAULT_RETRY_DELAY_SECONDS)

    parser.add_argument("--watch-timeout", env_var="WATCH_TIMEOUT", type=int, default=DEFAULT_WATCH_TIMEOUT_SECONDS)

    # Set when the Netperf CRD declares the status subresource
    parser.add_argument("--status-subresource", env_var="STATUS_SUBRESOURCE", type=_str_to_bool, default=False)

    parser.add_argument("--logging-level", env_var="LOGGING_LEVEL", default="INFO")

    parser.add_argument("--service-logging-level", env_var="SERVICE_LOGGING_LEVEL", default="INFO")

    parsed_args, _ = parser.parse_known_args(args, env_vars=os.environ)
    return NetperfOperatorConfig(
        namespace=parsed_args.namespace,
        netperf_image=parsed_args.netperf_image,
        kubeconfig=parsed_args.kubeconfig,
        api_timeout=parsed_args.api_timeout,
        retry_delay=parsed_args.retry_delay,
        watch_timeout=parsed_args.watch_timeout,
        status_subresource=parsed_args.status_subresource,
        logging_level=parsed_args.logging_level,
        service_logging_level=parsed_args.service_logging_level,
    )
