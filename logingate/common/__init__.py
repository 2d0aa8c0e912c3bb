# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Common utilities shared by the login gate packages.
"""

from .utils import (
    generate_id,
    get_current_time,
    start_of_day,
    format_timestamp,
    parse_timestamp,
    parse_date,
    split_list,
)

__all__ = [
    "generate_id",
    "get_current_time",
    "start_of_day",
    "format_timestamp",
    "parse_timestamp",
    "parse_date",
    "split_list",
]
