# -*- coding: utf-8 -*-

import sys
import argparse
import yaml
import logging
import threading
import time
from collections import Counter
from connPool.config_manager import validate_config
from connPool.connection_pool import ConnectionPool
from connPool.errors import CloseError, PoolError
from connPool.logging_manager import setup_logging
from connPool.tcp import TCPConnectionFactory


def build_pool(config):
    """
    Create a connection pool dialing the configured target.
    """
    target = config.target
    logging.info(
        f"Setting up pool of {config.pool.max_connections} connections to {target.host}:{target.port}."
    )
    factory = TCPConnectionFactory(target.host, target.port, connect_timeout=target.connect_timeout)
    return ConnectionPool.from_config(factory, config.pool)

def probe_worker(pool, probe_config, worker_id, stats, stats_lock):
    """
    Check connections out of the pool ``rounds`` times, sending the payload on each.
    """
    payload = probe_config.payload.encode() if probe_config.payload else None
    for round_no in range(probe_config.rounds):
        context = {"worker": worker_id, "round": round_no}
        try:
            with pool.connection(context=context) as sock:
                if payload:
                    sock.sendall(payload)
            outcome = "ok"
        except PoolError as e:
            outcome = "acquire_failed"
            logging.error(f"[worker {worker_id}] could not acquire connection: {e}")
        except OSError as e:
            # The pool already discarded the connection.
            outcome = "send_failed"
            logging.warning(f"[worker {worker_id}] connection failed: {e}")
        with stats_lock:
            stats[outcome] += 1

def run_probe(pool, probe_config):
    """
    Run the probe workers against ``pool`` and return outcome counts.
    """
    logging.info(
        f"Starting {probe_config.workers} workers with {probe_config.rounds} rounds each."
    )
    stats = Counter()
    stats_lock = threading.Lock()
    threads = [
        threading.Thread(
            target=probe_worker,
            args=(pool, probe_config, worker_id, stats, stats_lock),
            name=f"probe-{worker_id}",
        )
        for worker_id in range(probe_config.workers)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return stats

def main(config):
    """Probe the target through a pool, then shut the pool down."""
    pool = build_pool(config)
    started = time.monotonic()
    try:
        stats = run_probe(pool, config.probe)
        logging.info(
            f"Probe finished in {time.monotonic() - started:.3f}s: "
            f"{dict(stats)}, idle connections: {len(pool)}"
        )
        return stats
    finally:
        try:
            pool.close()
        except CloseError as e:
            logging.error(f"Error closing pool: {e}")

def load_config_yaml(path):
    """
    Read the probe configuration from a YAML file, exiting with status 1
    when it is missing, unreadable or not a mapping.
    """
    logging.info(f"[config] reading {path}")
    try:
        with open(path, "r") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        problem = "no such file"
    except yaml.YAMLError as e:
        problem = f"invalid YAML: {e}"
    except OSError as e:
        problem = f"unreadable: {e}"
    else:
        if isinstance(raw, dict):
            return raw
        problem = f"top level is {type(raw).__name__}, expected a mapping"
    logging.fatal(f"[config] {path}: {problem}")
    sys.exit(1)

if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='TCP connection pool probe')
    parser.add_argument('config_file', type=str, help='Path to the config YAML file')
    args = parser.parse_args()

    try:
        config = validate_config(load_config_yaml(args.config_file))
    except ValueError as e:
        logging.critical(f"{e}. Check configuration.")
        sys.exit(1)

    setup_logging(config.global_config.log_path, config.global_config.log_level)
    logging.info(f"[config] {args.config_file} validated")

    try:
        stats = main(config)
    except KeyboardInterrupt:
        logging.info("Interrupted, pool closed.")
        sys.exit(0)
    sys.exit(0 if stats["ok"] else 2)
