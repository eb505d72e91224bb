"""
Balanced voltage-drop screening (positive-sequence / RMS).
=========================================================

Scope:
- Balanced three-phase, steady-state power flow on pandapower.
- Quick feasibility check of a feeder: bus voltages against a +/- band,
  cable loading against the cable type rating.

Out of scope (by design):
- Phase imbalance and neutral displacement (use the sweep solver)
- Compensator injections
"""

from __future__ import annotations

import logging
import math

import pandapower as pp

from ..topology.network import LVNetwork


logger = logging.getLogger(__name__)

# Shortest line pandapower accepts for a zero-length section (km)
MIN_LINE_LENGTH_KM = 1e-6
# Purely resistive cables get a token reactance; the DC initialisation divides by x
MIN_LINE_X_OHM_PER_KM = 1e-6


def build_pandapower_network(
    network: LVNetwork,
    *,
    source_voltage_v: float | None = None,
    log: logging.Logger | None = None,
) -> pp.pandapowerNet:
    """
    Build the balanced pandapower model of an LV feeder:
    Source (slack) -> cables (lines) -> aggregated per-node loads (PQ) and productions (sgen).

    Per-phase powers are summed into three-phase totals. Nodes not
    connected to the source are left out.
    """

    log = log or logger

    tree = network.spanning_tree()
    if tree is None:
        raise ValueError(f"Network {network.name} has no source node")

    u_source = network.nominal_voltage_v if source_voltage_v is None else float(source_voltage_v)
    vn_kv = network.nominal_voltage_v * math.sqrt(3) / 1000.0

    net = pp.create_empty_network(name=network.name)

    # Buses
    bus_index = {}
    for node_id in tree.order:
        bus_index[node_id] = pp.create_bus(net, vn_kv=vn_kv, name=node_id)

    skipped = [n.id for n in network.nodes if n.id not in bus_index]
    if skipped:
        log.warning("Screening ignores nodes not connected to the source: %s", skipped)

    # Source transformer secondary as slack
    pp.create_ext_grid(
        net,
        bus=bus_index[tree.source_id],
        vm_pu=u_source / network.nominal_voltage_v,
        name="SOURCE",
    )

    # Cables
    for node_id in tree.order[1:]:
        cable = tree.parent_cable[node_id]
        cable_type = network.get_cable_type(cable.type_id)
        if cable_type is None:
            raise ValueError(f"Cable {cable.id} has unknown type {cable.type_id}")
        pp.create_line_from_parameters(
            net,
            from_bus=bus_index[tree.parent[node_id]],
            to_bus=bus_index[node_id],
            length_km=max(cable.length_km, MIN_LINE_LENGTH_KM),
            r_ohm_per_km=cable_type.r12_ohm_per_km,
            x_ohm_per_km=max(cable_type.x12_ohm_per_km, MIN_LINE_X_OHM_PER_KM),
            c_nf_per_km=0.0,
            max_i_ka=cable_type.max_current_a / 1000.0,
            name=cable.id,
        )

    # Aggregated loads and productions
    for node_id in tree.order:
        node = network.get_node(node_id)
        charges_kva = node.charges_kva.total
        productions_kva = node.productions_kva.total
        if charges_kva > 0:
            sin_phi = math.sqrt(max(0.0, 1.0 - node.power_factor ** 2))
            pp.create_load(
                net,
                bus=bus_index[node_id],
                p_mw=charges_kva * node.power_factor / 1000.0,
                q_mvar=charges_kva * sin_phi / 1000.0,
                name=f"LOAD_{node_id}",
            )
        if productions_kva > 0:
            pp.create_sgen(
                net,
                bus=bus_index[node_id],
                p_mw=productions_kva / 1000.0,
                q_mvar=0.0,
                name=f"PROD_{node_id}",
            )

    return net


def run_powerflow(net: pp.pandapowerNet) -> None:
    """Run a single power flow with standard options."""

    # `numba=False` avoids optional dependency warnings and keeps execution reproducible.
    pp.runpp(net, algorithm="nr", init="auto", enforce_q_lims=False, numba=False)


def summarize_screening_results(
    net: pp.pandapowerNet,
    nominal_voltage_v: float,
    voltage_tolerance_pct: float = 10.0,
) -> dict:
    """
    Extract the screening summary:
    - Bus voltages (pu and phase-neutral V)
    - Line loading (%) and current (kA)
    - Compliance of every bus with the +/- tolerance band
    """

    if net.get("res_bus", None) is None or net.res_bus.empty:
        raise RuntimeError("No power flow results found. Run `run_powerflow(net)` first.")

    bus = net.res_bus[["vm_pu", "va_degree"]].copy()
    bus.index = net.bus["name"].astype(str)
    bus["u_v"] = bus["vm_pu"] * nominal_voltage_v

    line = net.res_line[["loading_percent", "i_ka"]].copy()
    line.index = net.line["name"].astype(str)

    band = voltage_tolerance_pct / 100.0
    deviation = (bus["vm_pu"] - 1.0).abs()
    violations = sorted(bus.index[deviation > band])

    return {
        "bus": bus,
        "line": line,
        "min_vm_pu": float(bus["vm_pu"].min()),
        "max_vm_pu": float(bus["vm_pu"].max()),
        "violations": violations,
        "compliant": not violations,
    }


def run_balanced_screening(
    network: LVNetwork,
    voltage_tolerance_pct: float = 10.0,
    *,
    source_voltage_v: float | None = None,
    log: logging.Logger | None = None,
) -> dict:
    """Build, solve and summarize the balanced model of a feeder."""

    log = log or logger

    net = build_pandapower_network(network, source_voltage_v=source_voltage_v, log=log)
    run_powerflow(net)
    summary = summarize_screening_results(net, network.nominal_voltage_v, voltage_tolerance_pct)

    if summary["compliant"]:
        log.info(
            "Screening %s: compliant, voltages %.3f..%.3f pu",
            network.name, summary["min_vm_pu"], summary["max_vm_pu"],
        )
    else:
        log.warning(
            "Screening %s: %d node(s) outside +/-%.0f%%: %s",
            network.name, len(summary["violations"]), voltage_tolerance_pct, summary["violations"],
        )
    return summary
