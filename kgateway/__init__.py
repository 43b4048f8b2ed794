# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
kgateway - Kernel Gateway

Launches, tracks and tears down isolated compute-kernel workers on behalf
of remote callers, one per report id.
"""

__version__ = "1.0.0"
