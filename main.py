# main.py
import argparse
import json
import logging
import os
import sys

from cache import ConfigError, Geometry
from simulator import Simulator, format_summary, result_record
from tracefile import open_trace, read_events, write_trace
from visualize import plot_hit_miss_rate, plot_outcome_breakdown
from workload import WorkloadGenerator

DEFAULT_CONFIG = "config.json"
DEFAULT_NUM_REQUESTS = 10000
GENERATE_FROM_CONFIG = "config"


def load_config(path=DEFAULT_CONFIG, required=False):
    """
    Read the JSON config. A missing default config yields an empty one.
    """
    if not os.path.exists(path):
        if required:
            raise ConfigError(f"config file not found: {path}")
        return {}
    try:
        with open(path, "r") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e


def build_parser():
    parser = argparse.ArgumentParser(description="Set-associative LRU cache simulator")
    parser.add_argument("-s", dest="set_bits", type=int, help="number of set index bits (sets = 2^s)")
    parser.add_argument("-E", dest="associativity", type=int, help="number of lines per set")
    parser.add_argument("-b", dest="block_bits", type=int, help="number of block offset bits (block size = 2^b)")
    parser.add_argument("-t", dest="trace", type=str, help="trace file to replay")
    parser.add_argument("--config", "-c", dest="config", type=str, default=None, help="JSON config file (default: {})".format(DEFAULT_CONFIG))
    parser.add_argument("--debug", "-D", dest="debug", action="store_true", help="log every access")
    parser.add_argument("--log", dest="log", type=str, default=None, help="write log messages to this file")
    parser.add_argument("--output", dest="output", type=str, default=None, help="write JSON results to this file")
    parser.add_argument("--plot", dest="plot", action="store_true", help="render hit/miss charts")
    parser.add_argument("--generate", dest="generate", type=int, nargs="?", const=GENERATE_FROM_CONFIG, default=None, metavar="N", help="simulate N synthetic accesses instead of a trace (default N: workload.num_requests)")
    parser.add_argument("--save-trace", dest="save_trace", type=str, default=None, help="save the generated workload as a trace file")
    return parser


def resolve_geometry(cfg, args):
    cache_cfg = cfg.get("cache", {})
    geometry = Geometry(
        args.set_bits if args.set_bits is not None else cache_cfg.get("set_bits"),
        args.associativity if args.associativity is not None else cache_cfg.get("associativity"),
        args.block_bits if args.block_bits is not None else cache_cfg.get("block_bits"),
    )
    return geometry.validate()


def save_results(record, geometry, path):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as f:
        json.dump({"cache": geometry.describe(), "results": record}, f, indent=2)
    return path


def _results_path(args, out_cfg):
    if args.output:
        return args.output
    if "results_dir" in out_cfg or "results_file" in out_cfg:
        return os.path.join(out_cfg.get("results_dir", "results"), out_cfg.get("results_file", "results.json"))
    return None


def _num_requests(args, workload_cfg, trace_path):
    """
    Number of synthetic accesses to simulate, or None to replay a trace.
    Without --generate, a config with no trace but a workload.num_requests
    runs the synthetic workload.
    """
    if args.generate is None:
        if trace_path or "num_requests" not in workload_cfg:
            return None
        n = workload_cfg["num_requests"]
    elif args.generate == GENERATE_FROM_CONFIG:
        n = workload_cfg.get("num_requests", DEFAULT_NUM_REQUESTS)
    else:
        n = args.generate
    if isinstance(n, bool) or not isinstance(n, int) or n < 0:
        raise ConfigError(f"number of synthetic accesses must be a non-negative integer, got {n!r}")
    return n


def run(args):
    cfg = load_config(args.config or DEFAULT_CONFIG, required=args.config is not None)
    geometry = resolve_geometry(cfg, args)
    logging.debug("geometry : %s", geometry)
    sim = Simulator(geometry)

    workload_cfg = cfg.get("workload", {})
    trace_path = args.trace or cfg.get("trace", {}).get("path")
    num_requests = _num_requests(args, workload_cfg, trace_path)

    if num_requests is not None:
        generator = WorkloadGenerator.from_config(geometry.block_size, workload_cfg)
        events = generator.events(num_requests)
        if args.save_trace:
            events = list(events)
            write_trace(events, args.save_trace)
            logging.info("wrote %d events to %s", len(events), args.save_trace)
        snapshot = sim.run(events)
    else:
        with open_trace(trace_path) as f:
            snapshot = sim.run(read_events(f))

    record = result_record(snapshot, geometry.block_size)
    print(format_summary(record))

    out_cfg = cfg.get("output", {})
    results_path = _results_path(args, out_cfg)
    if results_path:
        save_results(record, geometry, results_path)
        print("Results saved to:", results_path)
    if args.plot:
        plot_hit_miss_rate(record["hit_rate"], out_cfg.get("hitmiss_plot", "results/hit_miss_rate.png"))
        plot_outcome_breakdown(record, geometry, out_cfg.get("breakdown_plot", "results/outcomes.png"))
        print("Plots saved in", os.path.dirname(out_cfg.get("hitmiss_plot", "results/hit_miss_rate.png")) or ".")
    return record


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        filename=args.log,
        format="%(levelname)s: %(message)s",
        level=(logging.DEBUG if args.debug else logging.WARNING),
    )
    try:
        run(args)
    except ConfigError as e:
        logging.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
