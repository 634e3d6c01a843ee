"""TELEMON — Demo Metric Definitions.

Five telecom metrics used to seed an empty local store, so a fresh install
shows a populated dashboard. Enabled with ``SEED_DEMO_METRICS=true``.
"""

from typing import Any, Dict, List

DEMO_METRICS: List[Dict[str, Any]] = [
    {
        "id": "1",
        "name": "Network Latency",
        "description": "Average network latency in milliseconds",
        "dataSource": {
            "type": "kibana",
            "query": "index=network_metrics | avg(latency)",
            "refreshInterval": 60000,
        },
        "ucl": 150,
        "lcl": 50,
        "unit": "ms",
        "criticalThreshold": 200,
    },
    {
        "id": "2",
        "name": "Call Drop Rate",
        "description": "Percentage of dropped calls",
        "dataSource": {
            "type": "database",
            "query": "SELECT avg(drop_rate) FROM call_metrics WHERE time > now() - 1h",
            "refreshInterval": 300000,
        },
        "ucl": 5,
        "lcl": 0,
        "unit": "%",
        "criticalThreshold": 10,
    },
    {
        "id": "3",
        "name": "Active Users",
        "description": "Number of currently active users",
        "dataSource": {
            "type": "kibana",
            "query": "index=user_sessions | count(distinct user_id)",
            "refreshInterval": 120000,
        },
        "ucl": 10000,
        "lcl": 1000,
        "unit": "users",
        "criticalThreshold": None,
    },
    {
        "id": "4",
        "name": "API Response Time",
        "description": "Average API response time",
        "dataSource": {
            "type": "database",
            "query": "SELECT avg(response_time) FROM api_logs WHERE time > now() - 30m",
            "refreshInterval": 60000,
        },
        "ucl": 300,
        "lcl": 50,
        "unit": "ms",
        "criticalThreshold": 500,
    },
    {
        "id": "5",
        "name": "Bandwidth Usage",
        "description": "Current bandwidth usage",
        "dataSource": {
            "type": "kibana",
            "query": "index=network_traffic | sum(bytes) / 1024 / 1024",
            "refreshInterval": 60000,
        },
        "ucl": 800,
        "lcl": 100,
        "unit": "Mbps",
        "criticalThreshold": 950,
    },
]
