# -*- coding: utf-8 -*-
"""Location: ./fmgateway/__main__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Allow ``python -m fmgateway``.
"""

# First-Party
from fmgateway.server import main

if __name__ == "__main__":  # pragma: no cover
    main()
