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
from bai_netperf_operator.errors import NetperfOperatorError

# netperf prints a fixed report: banner, blank-ish header lines and a single result row.
# The throughput (10^6 bits/sec) is the 5th column of that row:
#
# MIGRATED TCP STREAM TEST from 0.0.0.0 (0.0.0.0) port 0 AF_INET to 10.0.0.12 () port 0 AF_INET
# Recv   Send    Send
# Socket Socket  Message  Elapsed
# Size   Size    Size     Time     Throughput
# bytes  bytes   bytes    secs.    10^6bits/sec
#
#  87380  16384  16384    10.02     941.23
RESULT_LINE_INDEX = 6
THROUGHPUT_FIELD_INDEX = 4


class ParseError(NetperfOperatorError):
    pass


def parse_throughput(raw_output: str) -> float:
    lines = raw_output.split("\n")
    if len(lines) <= RESULT_LINE_INDEX:
        raise ParseError(
            f"Expected at least {RESULT_LINE_INDEX + 1} lines of netperf output, got {len(lines)}"
        )

    fields = lines[RESULT_LINE_INDEX].split()
    if len(fields) <= THROUGHPUT_FIELD_INDEX:
        raise ParseError(
            f"Expected at least {THROUGHPUT_FIELD_INDEX + 1} fields on line {RESULT_LINE_INDEX + 1} "
            f"of netperf output, got {len(fields)}: {lines[RESULT_LINE_INDEX]!r}"
        )

    value = fields[THROUGHPUT_FIELD_INDEX]
    try:
        return float(value)
    except ValueError as e:
        raise ParseError(f"Throughput field {value!r} is not a number") from e
