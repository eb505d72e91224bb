from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError

from .compensation.models import get_compensation_model
from .compensation.placement import find_optimal_compensator_node
from .config.models import CaseInput
from .powerflow.bfs import BackwardForwardSweepSolver
from .powerflow.screening import run_balanced_screening


def load_case(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Input JSON not found: {path}")
    return json.loads(p.read_text())


def _screening_to_dict(summary: dict) -> dict:
    return {
        "compliant": summary["compliant"],
        "violations": summary["violations"],
        "min_vm_pu": summary["min_vm_pu"],
        "max_vm_pu": summary["max_vm_pu"],
        "bus": summary["bus"].to_dict(orient="index"),
        "line": summary["line"].to_dict(orient="index"),
    }


def run_case(case: CaseInput, *, screen: bool = False) -> Dict[str, Any]:
    """
    Solve a case: baseline load flow, every compensator, placement ranking
    and, optionally, the balanced screening.
    """
    network = case.to_network()
    solver = BackwardForwardSweepSolver(
        source_voltage_v=case.solver.source_voltage_v,
        tolerance_v=case.solver.tolerance_v,
        max_iterations=case.solver.max_iterations,
    )

    baseline = solver.solve(network)
    outcomes = []
    for compensator in case.to_compensators():
        model = get_compensation_model(compensator.mode)
        outcomes.append(model.apply(network, compensator, solver, baseline=baseline))

    placement = find_optimal_compensator_node(network, baseline)

    screening = None
    if screen:
        screening = run_balanced_screening(
            network,
            case.screening.voltage_tolerance_pct,
            source_voltage_v=case.solver.source_voltage_v,
        )

    return {
        "network": network.get_topology_summary(),
        "baseline": baseline,
        "outcomes": outcomes,
        "placement": placement,
        "screening": screening,
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="EQUI8 neutral compensator calculation (CME mode) on an LV feeder."
    )
    parser.add_argument(
        "--input",
        "-i",
        required=True,
        help="Path to the case JSON.",
    )
    parser.add_argument(
        "--output",
        "-o",
        help="Path to write the results JSON.",
    )
    parser.add_argument(
        "--screen",
        action="store_true",
        help="Also run the balanced voltage-drop screening (pandapower).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Debug logging (calibration iterations, formula terms).",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        raw = load_case(args.input)
        case = CaseInput.model_validate(raw)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        print(f"Input error: {e}", file=sys.stderr)
        return 2
    except ValidationError as e:
        print("Input validation error:", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    run = run_case(case, screen=args.screen)
    outcomes = run["outcomes"]

    if args.output:
        out = {
            "network": run["network"],
            "baseline": run["baseline"].to_dict(),
            "compensators": [o.to_dict() for o in outcomes],
            "placement": run["placement"].to_dict(),
            "screening": _screening_to_dict(run["screening"]) if run["screening"] else None,
        }
        Path(args.output).write_text(json.dumps(out, indent=2))

    # Minimal console summary
    print(f"Network: {case.name} ({len(case.nodes)} nodes, {len(case.cables)} cables)")
    print(f"Baseline load flow converged: {run['baseline'].converged}")
    for o in outcomes:
        if not o.applied:
            print(f"{o.compensator_id} @ {o.node_id}: not applied ({o.reason})")
            continue
        cal = o.calibration
        print(
            f"{o.compensator_id} @ {o.node_id}: dU {o.voltages_before.spread:.2f} -> "
            f"{o.voltages_after.spread:.2f} V (-{o.reduction_percent:.1f}%)"
        )
        if cal is not None:
            print(
                f"  I={cal.final_iinj:.1f} A, {cal.iterations} iterations, converged={cal.converged}, "
                f"thermal_limited={cal.thermal_limited}"
            )

    best = run["placement"].optimal
    if best is not None:
        print(f"Suggested compensator node: {best.node_name} ({best.justification})")

    screening = run["screening"]
    if screening is not None:
        print(
            f"Balanced screening: compliant={screening['compliant']} "
            f"(voltages {screening['min_vm_pu']:.3f}..{screening['max_vm_pu']:.3f} pu)"
        )

    failed = [o for o in outcomes if not o.succeeded]
    if failed:
        print("\nCompensators not converged or aborted:", file=sys.stderr)
        for o in failed:
            print(f"- {o.compensator_id} @ {o.node_id}: {o.reason or 'not converged'}", file=sys.stderr)

    return 0 if not failed else 1


if __name__ == "__main__":
    raise SystemExit(main())
