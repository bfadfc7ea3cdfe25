"""
Core Kernel Module

Foundational utilities shared by the tax engine and its reports.

Components:
- hashing: canonical JSON and SHA256 seals for computed results

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

__all__ = ['hashing']
