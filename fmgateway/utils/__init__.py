# -*- coding: utf-8 -*-
"""Location: ./fmgateway/utils/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Utility helpers shared by the gateway services.
"""
