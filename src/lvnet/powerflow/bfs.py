"""
Four-Wire Backward/Forward Sweep Solver
=======================================

Reference unbalanced load flow for radial LV feeders (A, B, C, N).

Model:
- Source phase-neutral voltages at 0 / -120 / +120 degrees, neutral
  grounded at the source (0 V)
- Phase conductors: (R12 + jX12) * L, neutral conductor: (R0 + jX0) * L
- Constant-power mono-phase loads at the node power factor, productions
  at unity power factor, connected between phase and local neutral
- Compensator injections as nodal current sources

Each iteration computes load currents from the present voltages, sums
them towards the source (backward sweep) and recomputes voltages from
the source outwards (forward sweep).
"""

from typing import TYPE_CHECKING, Optional, Sequence
import cmath
import logging
import math

import numpy as np

from ..topology.network import LVNetwork
from ..topology.phases import PHASE_ANGLES, PHASES, PhaseValues
from .base import CableCurrents, PowerFlowResult, PowerFlowSolver

if TYPE_CHECKING:
    from ..compensation.injection import Injection


logger = logging.getLogger(__name__)

# Column indices in the (n, 4) conductor arrays
NEUTRAL = 3


class BackwardForwardSweepSolver(PowerFlowSolver):
    """
    Radial four-wire sweep solver.

    Args:
        source_voltage_v: Phase-neutral source voltage; None uses the
            network nominal voltage
        tolerance_v: Convergence threshold on the largest voltage change (V)
        max_iterations: Iteration ceiling
        log: Diagnostic sink (defaults to the module logger)
    """

    name = "bfs"

    def __init__(
        self,
        source_voltage_v: Optional[float] = None,
        tolerance_v: float = 1e-4,
        max_iterations: int = 100,
        log: Optional[logging.Logger] = None,
    ):
        if tolerance_v <= 0:
            raise ValueError("tolerance_v must be positive")
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.source_voltage_v = source_voltage_v
        self.tolerance_v = tolerance_v
        self.max_iterations = max_iterations
        self.log = log or logger

    def solve(
        self,
        network: LVNetwork,
        injections: Optional[Sequence["Injection"]] = None,
    ) -> PowerFlowResult:
        tree = network.spanning_tree()
        if tree is None:
            raise ValueError(f"Network {network.name} has no source node")

        order = tree.order
        index = {node_id: k for k, node_id in enumerate(order)}
        n = len(order)

        u_source = self.source_voltage_v or network.nominal_voltage_v
        e_source = np.array(
            [cmath.rect(u_source, PHASE_ANGLES[p]) for p in PHASES] + [0j],
            dtype=complex,
        )

        # Branch impedances, row k = cable feeding order[k]; row 0 unused
        parent = np.zeros(n, dtype=int)
        z = np.zeros((n, 4), dtype=complex)
        for k, node_id in enumerate(order[1:], start=1):
            cable = tree.parent_cable[node_id]
            cable_type = network.get_cable_type(cable.type_id)
            if cable_type is None:
                raise ValueError(f"Cable {cable.id} has unknown type {cable.type_id}")
            parent[k] = index[tree.parent[node_id]]
            z[k, :NEUTRAL] = complex(cable_type.r12_ohm_per_km, cable_type.x12_ohm_per_km) * cable.length_km
            z[k, NEUTRAL] = complex(cable_type.r0_ohm_per_km, cable_type.x0_ohm_per_km) * cable.length_km

        # Complex power drawn per phase (VA)
        s_load = np.zeros((n, 3), dtype=complex)
        for k, node_id in enumerate(order):
            node = network.get_node(node_id)
            sin_phi = math.sqrt(max(0.0, 1.0 - node.power_factor ** 2))
            for j, phase in enumerate(PHASES):
                s_load[k, j] = (
                    node.charges_kva.get(phase) * complex(node.power_factor, sin_phi)
                    - node.productions_kva.get(phase)
                ) * 1000.0

        # Nodal current sources (positive = into the network)
        i_injected = np.zeros((n, 4), dtype=complex)
        for injection in injections or []:
            if injection.node_id not in index:
                raise ValueError(f"Injection at unknown or unreachable node {injection.node_id}")
            k = index[injection.node_id]
            for j, phase in enumerate(PHASES):
                i_injected[k, j] += injection.phase_currents[phase]
            i_injected[k, NEUTRAL] += injection.i_neutral

        v = np.tile(e_source, (n, 1))
        branch = np.zeros((n, 4), dtype=complex)
        converged = False
        iterations = 0

        for iteration in range(1, self.max_iterations + 1):
            iterations = iteration

            v_pn = v[:, :NEUTRAL] - v[:, NEUTRAL:]
            i_load = np.conj(s_load / v_pn)

            demand = np.zeros((n, 4), dtype=complex)
            demand[:, :NEUTRAL] = i_load
            demand[:, NEUTRAL] = -i_load.sum(axis=1)
            demand -= i_injected

            # Backward sweep: children come after their parent in BFS order
            branch = demand.copy()
            for k in range(n - 1, 0, -1):
                branch[parent[k]] += branch[k]

            # Forward sweep
            v_new = np.empty_like(v)
            v_new[0] = e_source
            for k in range(1, n):
                v_new[k] = v_new[parent[k]] - z[k] * branch[k]

            change = np.max(np.abs(v_new - v))
            v = v_new

            if not np.isfinite(change):
                break
            if change < self.tolerance_v:
                converged = True
                break

        if not converged:
            self.log.warning(
                "Sweep solver did not converge on %s after %d iterations",
                network.name, iterations,
            )

        v_pn = np.abs(v[:, :NEUTRAL] - v[:, NEUTRAL:])
        result = PowerFlowResult(converged=converged, iterations=iterations)
        for k, node_id in enumerate(order):
            result.node_voltages[node_id] = PhaseValues(*(float(x) for x in v_pn[k]))
            result.neutral_voltages[node_id] = complex(v[k, NEUTRAL])
            if k == 0:
                continue
            cable = tree.parent_cable[node_id]
            result.cable_currents[cable.id] = CableCurrents(
                cable_id=cable.id,
                i_phase={p: complex(branch[k, j]) for j, p in enumerate(PHASES)},
                i_neutral=complex(branch[k, NEUTRAL]),
            )

        self.log.debug(
            "Sweep solver on %s: %d nodes, %d injections, %d iterations, converged=%s",
            network.name, n, len(injections or []), iterations, converged,
        )
        return result
