#!/usr/bin/env python3
"""
Parameter sweep for the hospital cart simulation.

Runs run_headless() across combinations of fleet size and job count on the
demo floor, reports delivery metrics, and optionally writes CSV output.

Usage:
    python sweep.py
    python sweep.py --agents 2,4 --jobs 10,20 --duration 1800
    python sweep.py --csv results.csv --parallel
"""
import argparse
import csv
import logging
import multiprocessing

from cart_simulation import build_random_context, run_headless

logger = logging.getLogger("sweep")


def _run_single(args):
    """Wrapper for multiprocessing: unpack args and call run_headless."""
    num_agents, num_jobs, duration, tick_dt, seed = args
    context = build_random_context(num_agents=num_agents, num_jobs=num_jobs, seed=seed)
    return run_headless(context, sim_duration=duration, tick_dt=tick_dt)


def main():
    parser = argparse.ArgumentParser(description="Hospital cart simulation parameter sweep")
    parser.add_argument("--duration", type=float, default=1800.0,
                        help="Simulation duration in sim-seconds (default: 1800 = 30 minutes)")
    parser.add_argument("--tick-dt", type=float, default=0.1,
                        help="Simulation tick timestep in seconds (default: 0.1)")
    parser.add_argument("--agents", type=str, default="1,2,3,4,6",
                        help="Comma-separated list of fleet sizes to sweep")
    parser.add_argument("--jobs", type=str, default="5,10,20",
                        help="Comma-separated list of job counts to sweep")
    parser.add_argument("--seed", type=int, default=1,
                        help="Random seed for agent placement and job generation")
    parser.add_argument("--csv", type=str, default=None,
                        help="Optional CSV output file path")
    parser.add_argument("--parallel", action="store_true",
                        help="Run sweep using multiprocessing")
    parser.add_argument("--workers", type=int, default=None,
                        help="Number of parallel workers (default: cpu_count, capped at 8)")
    parser.add_argument("--verbose", action="store_true",
                        help="Log simulation events")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(message)s")

    agent_counts = [int(x.strip()) for x in args.agents.split(",")]
    job_counts = [int(x.strip()) for x in args.jobs.split(",")]
    combos = [(a, j, args.duration, args.tick_dt, args.seed) for a in agent_counts for j in job_counts]
    total = len(combos)

    print(f"Sweep: {len(agent_counts)} fleet sizes x {len(job_counts)} job counts = {total} runs")
    print(f"Duration: {args.duration:.0f}s ({args.duration/60:.0f} sim-minutes), tick_dt: {args.tick_dt}s")

    results = []
    if args.parallel:
        n_workers = args.workers or min(multiprocessing.cpu_count(), 8)
        print(f"Mode: parallel ({n_workers} workers)\n")
        with multiprocessing.Pool(processes=n_workers) as pool:
            for i, result in enumerate(pool.imap_unordered(_run_single, combos), 1):
                results.append(result)
                print(f"  [{i}/{total}] Agents={result['num_agents']:>2}  "
                      f"Jobs={result['num_jobs']:>3}  "
                      f"Delivered={result['delivered']:>3}  "
                      f"Wall={result['wall_clock_seconds']:.1f}s")
    else:
        print("Mode: serial\n")
        for i, combo in enumerate(combos, 1):
            print(f"  [{i}/{total}] Agents={combo[0]}, Jobs={combo[1]} ...", end="", flush=True)
            result = _run_single(combo)
            results.append(result)
            print(f"  Delivered={result['delivered']:>3}  "
                  f"Wall={result['wall_clock_seconds']:.1f}s")

    results.sort(key=lambda r: (r["num_agents"], r["num_jobs"]))

    print()
    header = f"{'Agents':>6}  {'Jobs':>4}  {'Deliv':>5}  {'OnTime%':>7}  " \
             f"{'Wh':>7}  {'CO2 g':>7}  {'Dead%':>6}  {'Replans':>7}"
    print(header)
    print("-" * len(header))
    for r in results:
        print(f"{r['num_agents']:>6}  {r['num_jobs']:>4}  {r['delivered']:>5}  "
              f"{r['on_time_percentage']:>6.1f}%  "
              f"{r['total_energy_wh']:>7.1f}  {r['total_co2_g']:>7.1f}  "
              f"{r['deadheading_percentage']:>5.1f}%  {r['replan_count']:>7}")

    if args.csv:
        fieldnames = [
            "num_agents", "num_jobs", "delivered", "late_jobs", "on_time_percentage",
            "total_energy_wh", "total_co2_g", "deadheading_percentage",
            "idle_waiting_seconds", "idle_charging_seconds", "replan_count",
            "sim_duration", "wall_clock_seconds", "total_ticks",
        ]
        with open(args.csv, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for r in results:
                writer.writerow({k: r[k] for k in fieldnames})
        print(f"\nCSV written to: {args.csv}")


if __name__ == "__main__":
    main()
