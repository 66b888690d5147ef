"""Core module - configuration, errors and observability shared by every component.

Components (resolver, calculator, matcher, builder, tracker, auditor) live in
their own top-level packages; ERP and spreadsheet adapters live in /connectors/.
"""

__version__ = "1.0.0"
