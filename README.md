# kymaotel

Processors for a telemetry pipeline that carries logs, traces and metrics
from Kubernetes workloads. The package has three processors, each built
through a factory, and a small in-memory data model for telemetry
batches.

## The processors

### Istio noise filter

Module: `kymaotel.istio_noise_filter`. It handles logs, traces and metrics,
and drops telemetry that the Istio proxy records for the telemetry stack's
own traffic.

Spans are dropped only when their `component` attribute is `proxy`. Such a
span is dropped when it is one of these:

- from a telemetry gateway or agent in the `kyma-system` namespace;
- an OTLP `POST` to a `telemetry-otlp-(logs|metrics|traces).kyma-system`
  endpoint on port 4317 or 4318;
- an inbound `GET` whose user agent starts with `kyma-otelcol/` or
  `vm_promscrape`;
- an availability probe: a `GET` from the `istio-ingressgateway` in
  `istio-system` to `https://healthz.…/healthz/ready`.

Log records are dropped only when they carry `kyma.module=istio`. Such a
record is dropped when it is one of these:

- emitted by a telemetry gateway deployment or agent daemonset in
  `kyma-system`;
- addressed to a telemetry OTLP gateway host;
- an inbound metric scrape `GET`;
- an outbound `GET` to a `healthz.` host with a path ending in
  `/healthz/ready`.

Metric data points are dropped for `istio_*` metrics when
`source_workload` is `telemetry-metric-agent`, or when
`destination_workload` is one of the telemetry gateways.

Empty scopes and resources are removed afterwards. If nothing is left, the
batch is not passed on.

### Istio enrichment

Module: `kymaotel.istio_enrichment`. It handles logs only, and rewrites
log records tagged with `kyma.module=istio`:

- severity is set to `INFO`;
- a `network.protocol.name` such as `HTTP/1.1` is split into a name and a
  `network.protocol.version`;
- a `client.address` such as `10.0.0.1:8080` (or `[::1]:8080`) is split
  into an address and a `client.port`;
- the `kyma.module` marker is removed;
- the scope is renamed to `io.kyma-project.telemetry/istio`, with
  `Config.scope_version` as its version.

Records without the marker are left untouched.

### Service enrichment

Module: `kymaotel.service_enrichment`. It handles logs, traces and
metrics, and sets the `service.name` resource attribute when it is
missing, empty, or of the form `unknown_service[:...]`. It takes the first
attribute that is present, in this order:

1. the attributes listed in `Config.resource_attributes`;
2. `k8s.deployment.name`, `k8s.daemonset.name`, `k8s.statefulset.name`,
   `k8s.job.name`, `k8s.pod.name`.

If none is present, it keeps an existing `unknown_service:...` value, or
else sets `unknown_service`.

`ServiceEnrichmentProcessor.resolve_service_name` and
`enrich_service_name` can also be called directly on an attribute dict.

## Using a processor

Every processor module has a `new_factory()` function that returns a
`kymaotel.component.ProcessorFactory`. To use it:

1. Call `create_default_config()` to get the module's `Config`.
2. Call `create_logs`, `create_traces` or `create_metrics` with a
   `Settings`, a configuration and the next consumer. The next consumer is
   any object with a `consume(data)` method; `Sink` keeps what it receives
   in `received`.

The factory raises `InvalidConfigError` when the configuration is not the
module's `Config`. It raises `ValueError` when the processor does not
support the signal, for example when traces are asked of the Istio
enrichment processor.

```python
from kymaotel.component import Settings, Sink
from kymaotel.pdata import Logs, LogRecord, Resource, ResourceLogs, ScopeLogs
from kymaotel.service_enrichment import new_factory

logs = Logs([
    ResourceLogs(
        resource=Resource({"k8s.deployment.name": "shop"}),
        scope_logs=[ScopeLogs(log_records=[LogRecord()])],
    )
])

factory = new_factory()
sink = Sink()
processor = factory.create_logs(Settings(), factory.create_default_config(), sink)
processor.start()
processor.consume(logs)
processor.shutdown()

sink.received[0].resource_logs[0].resource.attributes["service.name"]  # "shop"
```

## The data model

`kymaotel.pdata` holds `Logs`, `Traces` and `Metrics`. Each has resource
and scope levels, with attributes kept as plain dicts.

- `Logs.log_record_count()`, `Traces.span_count()` and
  `Metrics.data_point_count()` count what a batch holds.
- `as_string(value)` renders an attribute value as text.

## Noise rules

The drop decisions of the noise filter are plain functions in
`kymaotel.noise_rules`:

```python
from kymaotel.noise_rules import should_drop_metric_data_point

should_drop_metric_data_point(
    "istio_requests_total", {"source_workload": "telemetry-metric-agent"}
)  # True

should_drop_metric_data_point(
    "custom.metric", {"source_workload": "telemetry-metric-agent"}
)  # False: not an Istio metric
```

`should_drop_log_record(log_record, resource_attrs)` and
`should_drop_span(span, resource_attrs)` make the same decision for a
single log record or span.

## Kubernetes API settings

`kymaotel.k8sconfig.create_rest_config(APIConfig(auth_type=...))` returns
a `RestConfig`. `APIConfig.validate()` raises `ValueError` for an unknown
auth type. The returned configuration never uses the system proxy.

- `none` and `serviceAccount` need `KUBERNETES_SERVICE_HOST` and
  `KUBERNETES_SERVICE_PORT` to be set.
  - `none` gives an insecure configuration for that host.
  - `serviceAccount` also reads the pod's service account token and CA
    certificate.
- `kubeConfig` reads the files named in `KUBECONFIG`, or `~/.kube/config`.
  It uses their current context, or `APIConfig.context` if that is set.

## What the package does not do

The package does not include the following:

- a collector: no command to run, no pipeline configuration file loader,
  and no receivers or exporters;
- network I/O: processors act on in-memory batches handed to `consume`;
- a Kubernetes client: `k8sconfig` builds connection settings only.

## Installation

```
pip install kymaotel
```

To run the tests:

```
pip install "kymaotel[test]"
pytest
```