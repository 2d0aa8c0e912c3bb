# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package matching implements glob-based matching of email domains.
"""

from .glob import (
    convert_glob_to_regex,
    compile_glob,
    matches,
    first_match,
)

__all__ = [
    "convert_glob_to_regex",
    "compile_glob",
    "matches",
    "first_match",
]
