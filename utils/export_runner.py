import argparse
import json
import sys

from logger.basic_logger import setup_logger
from utils.exporter_wrapper import DEFAULT_CONFIG_PATH, run_exporter


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Drain a paginated API into a local CSV file or S3."
    )
    parser.add_argument(
        "-y", "--yaml_path", default=DEFAULT_CONFIG_PATH, help="Path to the exporter YAML"
    )
    parser.add_argument("--job", default="stores", help="Job key under 'exports'")
    parser.add_argument(
        "--env", dest="env_name", default="prod", help="Env key under 'envs'"
    )
    parser.add_argument("--sink", choices=["local", "s3"], default="local")
    parser.add_argument("--log_level", default="INFO")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    log = setup_logger(args.log_level)

    log.info(
        "Starting run: job=%s env=%s yaml=%s sink=%s",
        args.job, args.env_name, args.yaml_path, args.sink,
    )
    result, meta = run_exporter(
        job=args.job,
        env_name=args.env_name,
        yaml_path=args.yaml_path,
        sink=args.sink,
        log=log,
    )
    if not result.is_ok():
        print(json.dumps({"status": "error", "meta": meta}))
        return 1
    print(json.dumps({"status": "ok", "meta": meta}))
    return 0


if __name__ == "__main__":
    sys.exit(main())
