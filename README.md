# gitbuilder

`gitbuilder` is a library of the parts a git-push build service is made
of: per-repository push locks, bare repositories with a pre-receive hook,
the object-store keys and Kubernetes pod specifications for slug and
Docker image builds, a cleaner for the repositories of deleted
applications, and a `/healthz` check.

## Modules

| Module | Purpose |
| --- | --- |
| `gitbuilder.env`, `gitbuilder.fs` | Environment and file-system access, real or in memory (`RealEnv`, `FakeEnv`, `RealFS`, `FakeFS`, `FakeFileNotFound`). |
| `gitbuilder.sha` | Validated 40-character lower-case hex commit hashes (`new_sha`, `Sha`, `InvalidGitSha`). |
| `gitbuilder.pull_policy` | Image pull policies (`PullPolicy`, `pull_policy_from_string`, `InvalidPullPolicy`). |
| `gitbuilder.circuit` | A thread-safe open/closed readiness indicator (`Circuit`, `CircuitState`). |
| `gitbuilder.lock` | Per-repository push locks (`InMemoryRepositoryLock`, `wrap_in_lock`, `AlreadyLockedError`). |
| `gitbuilder.server_config`, `gitbuilder.receive_config` | Settings read from environment variables (`load_server_config`, `load_receive_config`, `ReceiveConfig.check_durations`). |
| `gitbuilder.storage` | Object existence checks and polling (`object_exists`, `wait_for_object`, `PathNotFoundError`, `FakeObjectStatter`, `FakeObjectGetter`). |
| `gitbuilder.storage_params` | The builder key and object-store credentials from mounted secret files (`get_builder_key`, `get_storage_params`). |
| `gitbuilder.slug_info` | Object-store keys for one slug build (`SlugBuilderInfo`). |
| `gitbuilder.pods` | Builder pod specifications as plain dictionaries, pod names, waiting on pod phases, progress output and the build-environment secret. |
| `gitbuilder.build_type` | Choosing between a Procfile and a Dockerfile build (`get_build_type`, `BuildType`). |
| `gitbuilder.build` | Build steps: running commands, node selectors, JSON output, reading a Procfile, parsing pre-receive input lines. |
| `gitbuilder.repo` | Creating bare repositories, writing the pre-receive hook, and `receive`, which runs `git-shell` with a channel as its input and output. |
| `gitbuilder.cleaner` | Removing `<app>.git` directories and stored objects of applications that no longer have a namespace (`clean_once`, `run`). |
| `gitbuilder.health` | The health check (`healthz_status`) and a WSGI application serving it on `/healthz` (`make_healthz_app`). |
| `gitbuilder.sshd` | SSH helpers: MD5 key fingerprints, exec payload parsing, repository name cleaning, git pkt-lines and the `SSH_CONNECTION` value. |

## Examples

Validate a pushed commit hash:

```python
from gitbuilder.sha import new_sha, InvalidGitSha

sha = new_sha("71a09fbed590558ff822536584fc77248f070384")
sha.short  # "71a09fbe"

try:
    new_sha("abc123")
except InvalidGitSha as exc:
    print(exc)  # git sha abc123 was invalid
```

Turn configuration strings into values:

```python
from gitbuilder.pull_policy import pull_policy_from_string
from gitbuilder.build import build_builder_pod_node_selector, read_line

policy = pull_policy_from_string("Always")
selector = build_builder_pod_node_selector("pool:worker ,network:fast, disk:ssd")
# {"pool": "worker", "network": "fast", "disk": "ssd"}

old_rev, new_rev, ref_name = read_line("0000 1111 refs/heads/main")
```

Object-store keys for a build:

```python
from gitbuilder.slug_info import SlugBuilderInfo

info = SlugBuilderInfo("myapp", "c3b4e4ba")
info.tar_key                   # "home/myapp:git-c3b4e4ba/tar"
info.absolute_slug_object_key  # "home/myapp:git-c3b4e4ba/push/slug.tgz"
info.cache_key                 # "home/myapp/cache"
```

Clean a repository name taken from an SSH exec request:

```python
from gitbuilder.sshd import clean_repo_name

clean_repo_name("'/myapp.git'")  # "myapp"
```

An empty name, or one that contains `..`, raises `RepoNameError`.

Hold a push lock while work runs:

```python
from gitbuilder.lock import InMemoryRepositoryLock, wrap_in_lock

locks = InMemoryRepositoryLock(timeout=600)
wrap_in_lock(locks, "myapp", lambda: "done")  # "done"
```

`wrap_in_lock` raises `AlreadyLockedError` when the repository is already
locked and `TimeoutError` when the work outlasts the lock's timeout (in
seconds).

Track whether a server is up and answer health checks:

```python
from gitbuilder.circuit import Circuit, CircuitState
from gitbuilder.health import healthz_status

circuit = Circuit()             # starts open: not serving
circuit.close()                 # True: it was open and is now closed
assert circuit.state is CircuitState.CLOSED
```

`healthz_status(bucket_lister, circuit)` returns `HTTPStatus.OK` when the
circuit is closed and `bucket_lister.list("/")` succeeds within the
timeout, and `HTTPStatus.SERVICE_UNAVAILABLE` otherwise.

## Configuration

`load_server_config` and `load_receive_config` take a mapping such as
`os.environ` (the process environment when none is given), apply the
defaults of each setting and raise `ValueError` when a required variable
is missing or a number or boolean does not parse.
`ReceiveConfig.check_durations` resets polling intervals that are too
small, or not shorter than their timeouts, to 100 ms (builder pods) and
500 ms (object storage).

## What the package does not do

- It has no command-line entry point and starts no long-running service
  on its own.
- It has no SSH server: `gitbuilder.sshd` holds helpers only, and
  `gitbuilder.repo.receive` expects the caller to supply an accepted
  channel.
- It has no Kubernetes, controller or object-storage client. Pod
  specifications are returned as dictionaries; namespace listers, pod
  listers, secrets clients and storage drivers are objects the caller
  passes in.
- It does not run a whole build end to end: archiving the commit,
  uploading it, starting the pod and publishing the release are left to
  the caller, using the pieces above.
- There is no readiness check against a controller; only `/healthz`.

## Testing

The tests use pytest, installed with the `test` extra.