# -*- coding: utf-8 -*-
"""Location: ./fmgateway/services/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Gateway services: target discovery, sessions, request execution and the
tool handlers built on them.
"""
