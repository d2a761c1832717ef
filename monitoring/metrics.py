"""
Prometheus metrics for causal DAG toolkit monitoring.
Tracks API requests, graph construction errors and solver workload.
"""
from prometheus_client import Counter, Histogram, Gauge, Info
from typing import Dict


# Request metrics
api_requests_total = Counter(
    'causal_dag_api_requests_total',
    'Total number of API requests',
    ['status', 'endpoint']
)

graph_errors_total = Counter(
    'causal_dag_graph_errors_total',
    'Total number of graph errors by type',
    ['error_type']
)

# Workload metrics
graph_node_count = Histogram(
    'causal_dag_graph_node_count',
    'Number of nodes per submitted graph',
    buckets=[2, 3, 5, 10, 20, 50]
)

path_count = Histogram(
    'causal_dag_path_count',
    'Number of paths enumerated per request',
    ['kind'],
    buckets=[0, 1, 2, 5, 10, 50, 100, 500]
)

adjustment_set_count = Histogram(
    'causal_dag_adjustment_set_count',
    'Number of minimal adjustment sets per request',
    buckets=[0, 1, 2, 3, 5, 10]
)

# Latency metrics
path_latency_seconds = Histogram(
    'causal_dag_path_latency_seconds',
    'Path enumeration latency in seconds',
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]
)

solver_latency_seconds = Histogram(
    'causal_dag_solver_latency_seconds',
    'Adjustment set solver latency in seconds',
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0]
)

# System health metrics
component_health = Gauge(
    'causal_dag_component_health',
    'Component health status (1=healthy, 0=unhealthy)',
    ['component']
)

# System info
system_info = Info(
    'causal_dag_system',
    'Causal DAG toolkit information'
)


class MetricsCollector:
    """Helper class for collecting and recording metrics"""

    @staticmethod
    def record_request(status: str, endpoint: str):
        """Record an API request"""
        api_requests_total.labels(status=status, endpoint=endpoint).inc()

    @staticmethod
    def record_graph_error(error_type: str):
        """Record a graph construction or query error"""
        graph_errors_total.labels(error_type=error_type).inc()

    @staticmethod
    def record_graph_size(nodes: int):
        graph_node_count.observe(nodes)

    @staticmethod
    def record_paths(counts: Dict[str, int]):
        """Record number of paths per kind (causal, backdoor)"""
        for kind, count in counts.items():
            path_count.labels(kind=kind).observe(count)

    @staticmethod
    def record_adjustment_sets(count: int):
        adjustment_set_count.observe(count)

    @staticmethod
    def record_latencies(metrics: Dict[str, float]):
        """Record all latency metrics"""
        if 'paths' in metrics:
            path_latency_seconds.observe(metrics['paths'])

        if 'solver' in metrics:
            solver_latency_seconds.observe(metrics['solver'])

    @staticmethod
    def update_component_health(component: str, is_healthy: bool):
        """Update component health status"""
        component_health.labels(component=component).set(1 if is_healthy else 0)

    @staticmethod
    def set_system_info(info: Dict[str, str]):
        """Set system information"""
        system_info.info(info)
