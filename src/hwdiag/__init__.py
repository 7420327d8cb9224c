"""
hwdiag - Hardware Diagnostic Collector

Collects a one-shot hardware snapshot (CPU, RAM, storage, battery, machine
identity) from the local machine and submits it to a diagnostics backend.

Modules:
    - adapters: Per-category hardware adapters behind the HardwareReader interface
    - collector: Sequential collection pipeline with observable progress state
    - api_client: REST client for the diagnostics backend
    - models: Snapshot and backend record types
    - utils: Configuration and logging helpers
"""

__version__ = "1.0.0"
__author__ = "hwdiag Contributors"
__license__ = "Apache-2.0"
