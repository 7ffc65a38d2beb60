# kubebind

A library for describing API bindings between a service-provider cluster and a
consumer cluster in the `kube-bind.io/v1alpha1` API group. It also applies the
manifests and CustomResourceDefinitions involved through a cluster client that you
supply.

## What is in it

- `kubebind.meta`: group identity and common metadata. It has `GroupVersion`,
  `GroupVersionResource`, `SchemaGroupResource`, `ObjectMeta` and `OwnerReference`.
  `resource(name)` qualifies a resource with the `kube-bind.io` group, and
  `known_kinds()` lists the kinds registered for the group version.
- API objects, as dataclasses with `to_dict()` and `from_dict()`:
  - `kubebind.binding`: `APIServiceBinding`, `APIServiceNamespace`, `ClusterBinding`,
    their specs, statuses and lists, `LocalSecretKeyRef`, `ClusterSecretKeyRef` and
    the `Scope` enum.
  - `kubebind.export`: `APIServiceExport` with its spec, versions, schema, status and
    list. Its CRD part is `APIServiceExportCRDSpec`.
  - `kubebind.request`: `APIServiceExportRequest`, `APIServiceExportRequestResponse`
    (its metadata holds only a name), `APIServiceExportRequestList`, `GroupResource`
    and the `APIServiceExportRequestPhase` enum.
  - `kubebind.discovery`: `BindingProvider` and `BindingResponse`. The kubeconfig of a
    `BindingResponse` is base64 on the wire and bytes in Python.

  `from_dict()` raises `ValueError` when a `kind` does not match, or when a scope or
  phase has an unknown value.
- `kubebind.helpers`:
  - `service_export_to_crd(export)` returns a CustomResourceDefinition as a dict.
  - `crd_to_service_export(crd)` returns an `APIServiceExportCRDSpec`. It skips
    versions that are not served. When the CRD uses webhook conversion, it keeps only
    the first served version.
  - `api_service_export_crd_spec_hash(spec)` returns a base-62 SHA-224 hash of the
    spec's JSON encoding. It returns `""` if the spec cannot be encoded.
  - `is_owned_by_binding(name, uid, refs)` checks owner references (objects or dicts)
    for an `APIServiceBinding` of that name. The uid is checked too when one is given.
- `kubebind.apierrors`:
  - Error classes: `ApiError`, `NotFoundError`, `AlreadyExistsError`, `ConflictError`,
    `TooManyRequestsError` and `AggregateError`.
  - `aggregate(errors)` combines errors and ignores `None`.
  - `is_retryable(error)` is true for a refused connection, throttling or a conflict,
    including one found in the error's cause chain.
- `kubebind.bootstrap`: creates or updates every document of every YAML file in a
  directory, or in a mapping of file names to contents.
  - Each document is first run through a small template language. It supports
    `{{if}}`, `{{else}}`, `{{else if}}`, `{{end}}`, comments, trim markers and
    `not`/`and`/`or`/`index`. The included batteries are available as `.Batteries`.
    `render_manifest()` exposes this step on its own.
  - Objects annotated with `bootstrap.kube-bind.io/battery` are skipped unless one of
    the listed batteries is included.
  - Existing objects annotated with `bootstrap.kube-bind.io/create-only` are left
    untouched.
  - `replace_option(old, new, ...)` builds an `Option` that replaces strings in each
    document.
  - `bootstrap()` retries every `interval` seconds until everything succeeds, or
    until a `threading.Event` passed as `stop` is set. In that case it raises
    `TimeoutError`.
- `kubebind.crd`: works with CRD files named `<group>_<resource>.yaml`.
  - `crd(fs, group_resource)` loads and checks one of them.
  - `create_single()` creates or updates a CRD, then waits until its `Established`
    condition is true.
  - `create_from_fs(client, fs, *group_resources)` does this for several CRDs in
    parallel. Each group resource is any object with `group` and `resource`
    attributes.
  - Retryable errors are retried a few times with backoff by
    `retry_retryable_errors()`.

## Connecting to a cluster

Cluster access goes through abstract classes that you implement over your own client:

- `kubebind.bootstrap.ResourceClient`, with `create`, `get` and `update`.
- `kubebind.bootstrap.RESTMapper`, with `resource_for` and an overridable
  `invalidate`.
- `kubebind.crd.CRDClient`, with `get`, `create` and `update`.

Implementations are expected to raise the classes from `kubebind.apierrors`:
`NotFoundError`, `AlreadyExistsError` and so on.

## Example

```python
from kubebind import helpers
from kubebind.export import APIServiceExport

export = APIServiceExport.from_dict({
    "apiVersion": "kube-bind.io/v1alpha1",
    "kind": "APIServiceExport",
    "metadata": {"name": "mangodbs.mangodb.com"},
    "spec": {
        "group": "mangodb.com",
        "names": {"plural": "mangodbs", "kind": "MangoDB"},
        "scope": "Namespaced",
        "informerScope": "Cluster",
        "versions": [{"name": "v1alpha1", "served": True, "storage": True,
                      "schema": {"openAPIV3Schema": {"type": "object"}}}],
    },
})
crd = helpers.service_export_to_crd(export)
print(helpers.api_service_export_crd_spec_hash(export.spec))
```

## What it does not do

This is a library only. It has:

- no command-line tool;
- no Kubernetes client or kubeconfig handling;
- no controller or server that watches or reconciles these objects, syncs resources
  between clusters, or runs leader election;
- no bundled manifest or CRD files.

It describes the objects and applies the manifests you give it through the client
you provide.

## Installation

```
pip install .
```

## Tests

```
pip install ".[test]"
pytest
```