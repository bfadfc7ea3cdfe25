"""
Modules Package

Business Logic Layer

Modules:
- tax: Monthly capital-gains tax engine (renda variável)

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

__all__ = ['tax']
