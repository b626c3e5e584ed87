"""
Prometheus metrics for the ClinicFlow service.
"""
from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry
import psutil
import os


class Metrics:
    """
    Centralized metrics for the ClinicFlow service.
    """

    def __init__(self, service_name: str = "clinicflow", version: str = "0.1.0", registry=None):
        self.service_name = service_name
        self.version = version
        self.registry = registry or CollectorRegistry()

        # HTTP Metrics
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["service", "method", "path", "status"],
            registry=self.registry,
        )

        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["service", "method", "path"],
            registry=self.registry,
        )

        self.http_requests_active = Gauge(
            "http_requests_active",
            "Number of active HTTP requests",
            registry=self.registry,
        )

        # Application Info
        self.app_info = Info(
            "app",
            "Application information",
            registry=self.registry,
        )
        self.app_info.info({"service": service_name, "version": version})

        self.app_up = Gauge(
            "app_up",
            "Application up status (1=up, 0=down)",
            ["service", "version"],
            registry=self.registry,
        )
        self.app_up.labels(service=service_name, version=version).set(1)

        # Business Metrics - workflow engine
        self.events_processed_total = Counter(
            "clinicflow_events_processed_total",
            "Total workflow events processed",
            ["event_type"],
            registry=self.registry,
        )

        self.executions_total = Counter(
            "clinicflow_executions_total",
            "Total rule executions by final status",
            ["status"],
            registry=self.registry,
        )

        self.actions_total = Counter(
            "clinicflow_actions_total",
            "Total actions by type and outcome",
            ["action_type", "outcome"],
            registry=self.registry,
        )

        self.delayed_actions_pending = Gauge(
            "clinicflow_delayed_actions_pending",
            "Delayed actions waiting in the queue",
            registry=self.registry,
        )

        # System Metrics
        self._setup_process_metrics()

    def _setup_process_metrics(self):
        """Set up process-level metrics using psutil."""
        self.process_cpu_seconds = Counter(
            "process_cpu_seconds_total",
            "Total CPU time consumed by process",
            ["service"],
            registry=self.registry,
        )

        self.process_memory_bytes = Gauge(
            "process_resident_memory_bytes",
            "Resident memory size in bytes",
            ["service"],
            registry=self.registry,
        )

        self.process_open_fds = Gauge(
            "process_open_fds",
            "Number of open file descriptors",
            ["service"],
            registry=self.registry,
        )

        self._last_cpu_total = 0.0
        self.update_system_metrics()

    def update_system_metrics(self):
        """Update system metrics from psutil."""
        try:
            process = psutil.Process(os.getpid())

            # Counter can't be set, so increment by the delta since last update
            cpu_times = process.cpu_times()
            cpu_total = cpu_times.user + cpu_times.system
            cpu_diff = cpu_total - self._last_cpu_total
            if cpu_diff > 0:
                self.process_cpu_seconds.labels(service=self.service_name).inc(cpu_diff)
            self._last_cpu_total = cpu_total

            memory_info = process.memory_info()
            self.process_memory_bytes.labels(service=self.service_name).set(memory_info.rss)

            try:
                num_fds = process.num_fds()
                self.process_open_fds.labels(service=self.service_name).set(num_fds)
            except AttributeError:
                # num_fds() not available on all platforms
                pass

        except psutil.Error:
            pass

    def record_event_processed(self, event_type: str):
        self.events_processed_total.labels(event_type=event_type).inc()

    def record_execution(self, status: str):
        self.executions_total.labels(status=status).inc()

    def record_action(self, action_type: str, outcome: str):
        self.actions_total.labels(action_type=action_type, outcome=outcome).inc()

    def set_delayed_actions_pending(self, count: int):
        self.delayed_actions_pending.set(count)
