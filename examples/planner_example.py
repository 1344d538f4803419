#!/usr/bin/env python3
"""
Planner example: several ingestion cycles against an in-memory log.
"""

import argparse

from offsetplanner.broker import InMemorySnapshotFetcher
from offsetplanner.planner import OffsetPlanner, PlannerConfig
from offsetplanner.utils.logging import configure_logging


def main():
    parser = argparse.ArgumentParser(description='Offset Planner Example')
    parser.add_argument('--log', default='orders', help='Log name')
    parser.add_argument('--budget', type=int, default=300, help='Events per cycle')
    parser.add_argument('--reset', default='earliest', help='Reset strategy')
    parser.add_argument('--cycles', type=int, default=4, help='Cycles to plan')
    args = parser.parse_args()

    configure_logging(log_level='WARNING', log_format='console')

    fetcher = InMemorySnapshotFetcher({
        args.log: {0: (0, 150), 1: (0, 500), 2: (40, 90)},
    })

    planner = OffsetPlanner(
        PlannerConfig(
            log_name=args.log,
            max_events_per_cycle=args.budget,
            auto_offset_reset=args.reset,
        ),
        fetcher,
    )

    # Stands in for the durable checkpoint store
    checkpoint = ""

    for cycle in range(args.cycles):
        plan = planner.plan(checkpoint)

        print(f"Cycle {cycle}: {plan.total_events} events")
        for r in plan.ranges:
            print(f"  partition {r.partition_index}: [{r.from_offset}, {r.until_offset})")

        # Records would be read and committed downstream here
        checkpoint = plan.checkpoint
        print(f"  checkpoint: {checkpoint}\n")

        fetcher.append(args.log, 0, 25)

        # Retention overtakes partition 1 after the second cycle, so the
        # third cycle restarts every partition from its earliest offset
        if cycle == 1:
            fetcher.truncate(args.log, 1, 400)


if __name__ == '__main__':
    main()
