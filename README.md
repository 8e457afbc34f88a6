# kes

Building blocks for a key management service:

- `kes.secret`: `Secret`, a 256-bit key that wraps and unwraps data keys.
  `wrap` seals with AES-256-GCM under a key derived by HMAC-SHA-256 from
  the secret and a random IV. `unwrap` accepts that form and also
  ChaCha20-Poly1305 with an HChaCha20-derived key. `parse_secret` reads
  the text form `{"bytes":"<base64>"}` that `str(secret)` produces.
- `kes.cache`: `SecretCache`, a thread-safe in-memory cache of secrets.
  It can run background threads that empty the cache at a fixed interval,
  or that drop entries which have not been used recently.
- `kes.store`: `SecretStore`, which caches secrets in front of any
  `Remote` key-value backend. It also defines `KeyNotFoundError` and
  `KeyExistsError`.
- `kes.policy`: `Policy` objects that allow or deny request paths by glob
  pattern. The module also provides `match`, for shell-style matching in
  which `*` and `?` do not cross `/`, and `parse_policy`, which reads the
  JSON form `{"paths":[...]}`.
- `kes.metric`: the `Metric` server snapshot and `parse_metric`.
- `kes.retry`: `RetryClient`, a `requests`-based HTTP client. It retries
  requests that fail with a temporary network error or a 503 response, and
  `send` spreads requests over several endpoints.
- `kes.alignment` and `kes.table`: `Alignment` for fixed-width text, and
  `Table` for a terminal table that keeps a sliding window of rows.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

Wrap a data key:

```python
import os
from kes.secret import Secret, parse_secret

secret = Secret(os.urandom(32))
sealed = secret.wrap(b"data key", b"context")
assert secret.unwrap(sealed, b"context") == b"data key"
assert parse_secret(str(secret)) == secret
```

Keep secrets in a store. The store needs a backend, so this example
defines a small in-memory one:

```python
import os
from kes.secret import Secret
from kes.store import KeyExistsError, KeyNotFoundError, Remote, SecretStore

class MemoryRemote(Remote):
    def __init__(self):
        self.entries = {}

    def create(self, key, value):
        if key in self.entries:
            raise KeyExistsError()
        self.entries[key] = value

    def delete(self, key):
        self.entries.pop(key, None)

    def get(self, key):
        try:
            return self.entries[key]
        except KeyError:
            raise KeyNotFoundError() from None

    def list(self):
        return iter(list(self.entries))

store = SecretStore(MemoryRemote())
key = Secret(os.urandom(32))
store.create("my-key", key)
assert store.get("my-key") == key
print(list(store.list()))
```

`SecretStore.start_gc(expiry, unused_expiry, stop)` starts the background
expiry of cached secrets. It takes intervals in seconds and a
`threading.Event` that stops the expiry once it is set.

Check request paths against a policy:

```python
from kes.policy import NotAllowedError, Policy, parse_policy

policy = Policy("/v1/key/create/*", "/v1/key/delete/*")
policy.verify("/v1/key/create/my-key")        # allowed
try:
    policy.verify("/v1/key/generate/my-key")
except NotAllowedError:
    print("denied")

assert parse_policy(policy.to_json()) == policy
```

Draw a table:

```python
from kes.table import Cell, Table

table = Table("Name", "Status")
table.add_row(Cell("my-key"), Cell("ok", color="32"))
print(table.render(40, 20), end="")
```

## What this package does not do

It ships no concrete `Remote` backend, so you have to supply your own, as
in the example above. It has no server, no command-line program and no
reader for log event streams. `RetryClient` is only an HTTP transport; no
client for a key server's API is built on it.