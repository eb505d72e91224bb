"""
EQUI8 compensation on a small radial feeder (single snapshot).

Minimal example:
Source -> three cable sections -> compensator at the far end of the main branch.
Prints the baseline voltages, the calibration outcome and the balanced screening.
"""

import json
import logging
import sys
from pathlib import Path

# Ensure the package is importable when running from /examples
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from lvnet.compensation import get_compensation_model
from lvnet.config import CaseInput
from lvnet.powerflow import BackwardForwardSweepSolver, run_balanced_screening


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    case = CaseInput.model_validate(json.loads((Path(__file__).parent / "case_feeder.json").read_text()))
    network = case.to_network()
    solver = BackwardForwardSweepSolver()

    baseline = solver.solve(network)
    print("=== Baseline phase-neutral voltages (V) ===")
    print(baseline.bus_frame().to_string())

    for compensator in case.to_compensators():
        outcome = get_compensation_model(compensator.mode).apply(network, compensator, solver, baseline=baseline)
        print(f"\n=== {compensator.id} @ {compensator.node_id} ===")
        print(json.dumps(outcome.to_dict(), indent=2))

    s = run_balanced_screening(network, case.screening.voltage_tolerance_pct)
    print("\n=== Balanced screening: bus voltages (pu) ===")
    print(s["bus"].to_string())
    print("\n=== Cable loading (%) ===")
    print(s["line"][["loading_percent"]].to_string())


if __name__ == "__main__":
    main()
