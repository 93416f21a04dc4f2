#!/usr/bin/env python3
"""HTTP API for running image lifecycles using Flask."""

import argparse
import sys

from flask import Flask, jsonify, request

from loopimage.config import ImageConfig
from loopimage.errors import ConfigError, ProvisionError
from loopimage.orchestrator import Provisioner

app = Flask(__name__)
# Settings applied to every request before the request's own overrides.
base_config = {}


@app.route("/provision", methods=["POST"])
def provision():
    """Run one lifecycle with the configuration given in the JSON body."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Expected a JSON object"}), 400

    print(f"Received config: {data}", file=sys.stderr)

    values = dict(base_config)
    values.update(data)
    try:
        # Concurrent requests may name the same mount point.
        conf = ImageConfig.from_dict(values, lock_mount_point=True)
    except ConfigError as e:
        return jsonify({"error": str(e)}), 400

    try:
        report = Provisioner(conf).run()
    except ProvisionError as e:
        return jsonify(e.to_dict()), 500

    return jsonify(report.to_dict())


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="HTTP API for provisioning disk images")
    parser.add_argument("--host", default="127.0.0.1", help="Address to listen on")
    parser.add_argument("--port", type=int, default=12345, help="Port to listen on")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument("--fs-type", help="Default filesystem type")
    parser.add_argument("--mkfs", help="Default formatter executable")
    args = parser.parse_args()

    if args.fs_type:
        base_config["fs_type"] = args.fs_type
    if args.mkfs:
        base_config["mkfs_tool"] = args.mkfs

    print(f"Listening on {args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug)
