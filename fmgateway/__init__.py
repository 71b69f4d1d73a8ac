# -*- coding: utf-8 -*-
"""Location: ./fmgateway/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

FileMaker MCP Gateway - exposes FileMaker Data API databases as MCP tools.
"""

__copyright__ = "Copyright 2025"
__license__ = "Apache 2.0"
__version__ = "1.0.0"
__description__ = "MCP gateway for the FileMaker Data API with session and result caching"
__packages__ = ["fmgateway"]
