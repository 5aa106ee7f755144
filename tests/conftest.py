"""Shared fixtures: a small charges document evaluated on 2024-04-11 00:00 (April has 30 days)."""

import copy
import datetime as dt
import json

import pytest

from costboard.loader import parse_document

CHARGES = {
    "AWS_usable_services": [
        {
            "service": "Elastic Compute Cloud",
            "desc": "Virtual servers",
            "volume_amount_per_iteration": 0.05,
            "sub_services": [
                {
                    "service": "t3.micro",
                    "amount_per_iteration": 0.10,
                    "iterations_per_month": 720,
                    "iteration_name": "hours",
                    "enabled_region": {
                        "us-east-1": [
                            {"name": "web-1", "status": "Running",
                             "created_date": "2024-04-01T00:00:00", "volume": 100},
                            {"name": "batch-1", "status": "Stopped",
                             "created_date": "2024-03-15T08:00:00", "volume": 50},
                        ],
                        "eu-west-1": [],
                    },
                },
                {
                    "service": "t3.large",
                    "amount_per_iteration": 0.20,
                    "enabled_region": {
                        "eu-west-1": [
                            {"name": "db-1", "status": "Running",
                             "created_date": "2024-04-05T12:00:00", "volume": "30"},
                        ],
                    },
                },
            ],
        },
        {
            "service": "Virtual Private Cloud",
            "desc": "Network infrastructure",
            "sub_services": [
                {
                    "service": "NAT Gateway",
                    "amount_per_iteration": 0.045,
                    "iterations_per_month": 720,
                    "iteration_name": "hours",
                    "enabled_region": {"us-east-1": 2, "eu-west-1": 1},
                },
                {
                    "service": "Public IPv4",
                    "amount_per_iteration": 0.005,
                    "iterations_per_month": 720,
                    "enabled_region": {"us-east-1": [{"ip": "198.51.100.1"}, {"ip": "198.51.100.2"}]},
                },
            ],
        },
        {
            "service": "AMI",
            "desc": "Machine image snapshots",
            "amount_per_iteration": 0.05,
            "sub_services": {
                "us-east-1": [
                    {"name": "base-image", "used_ebs_size": "8"},
                    {"name": "web-image", "used_ebs_size": 12},
                ],
                "eu-west-1": [{"name": "db-image", "used_ebs_size": 20}],
            },
        },
    ],
    "AWS_default_services": [
        {"name": "CloudWatch", "desc": "Monitoring", "total_amount": 3.5},
        {"name": "Route 53", "desc": "DNS", "total_amount": 1.0},
    ],
}


@pytest.fixture
def charges() -> dict:
    return copy.deepcopy(CHARGES)


@pytest.fixture
def document(charges):
    return parse_document(charges)


@pytest.fixture
def now() -> dt.datetime:
    return dt.datetime(2024, 4, 11, 0, 0)


@pytest.fixture
def charges_file(tmp_path, charges):
    path = tmp_path / "charges.json"
    path.write_text(json.dumps(charges), encoding="utf-8")
    return path
