"""
LV Network Neutral Compensation
===============================

Design engine for low-voltage (230/400 V, four-wire) distribution feeders
with neutral compensators (EQUI8, CME current-injection mode):
- Feeder topology with geographic cable routes
- Equivalent upstream impedance resolution
- CME target voltages and injected-current estimation
- Secant calibration of the injected current against a load flow
- Thermal limits and coherence diagnostics

Architecture:
- topology/: Nodes, cables, cable types, impedance resolver
- resources/: Compensator device model
- compensation/: CME engine, calibration loop, strategies
- powerflow/: Solver contract, reference sweep solver, pandapower screening
- config/: Case input models (pydantic)
- cli.py: Command-line entry point (lvnet-equi8)
"""

__version__ = "1.0.0"
