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
def main(argv=None):
    from bai_netperf_operator import SERVICE_NAME, SERVICE_DESCRIPTION
    from bai_netperf_operator.args import get_netperf_operator_config
    from bai_netperf_operator.logging import configure_logging

    config = get_netperf_operator_config(argv)

    configure_logging(level=config.logging_level, service_level=config.service_logging_level)

    from bai_netperf_operator import service_logger
    from bai_netperf_operator.dispatcher import create_dispatcher

    logger = service_logger.getChild(SERVICE_NAME)
    logger.info(f"Starting {SERVICE_NAME} Service: {SERVICE_DESCRIPTION}")
    logger.info("service_args = %s", config)

    dispatcher = create_dispatcher(config)
    dispatcher.run_loop()


if __name__ == "__main__":
    main()
