# k8e

Building blocks for a lightweight Kubernetes distribution. The package can:

- merge YAML config files into command-line arguments
- build daemon flag lists and write etcd config files
- encrypt cluster bootstrap data
- check an unpacked data directory
- choose a managed datastore driver
- select, parse and stage manifests
- report node addresses the way a cloud provider does

## Install

```
pip install k8e
```

## Modules

### `k8e.configfilearg`

`Parser(after, flag_names, env_name, default_config, valid_flags)` finds a config file and splices its flags into an argument list.

- The file's flags go straight after the first argument named in `after`.
- An `after` entry of the form `name:N` moves that point N arguments further on. It does not move if that argument is missing or starts with `-`.
- The file location comes from, in order:
  1. the environment variable `env_name`;
  2. one of `flag_names`, written either as `-c file` or as `-c=file`;
  3. `default_config`.
- A default file that does not exist is ignored. A file given explicitly that does not exist raises `FileNotFoundError`.
- When `valid_flags` lists flags for the subcommand (the second argument), file flags not in that list are dropped and a warning is logged.

Other methods and functions:

- `Parser.parse(args)`: returns the merged argument list.
- `Parser.find_string(args, target)`: returns one key's value from the file.
- `Parser.find_config_file_flag(args)`: returns the file location and whether it was given explicitly.
- `Parser.find_start(args)`: returns the split.
- `read_config_file(path)`: reads `path` and then every `*.yaml`/`*.yml` file in `<path>.d`, in name order, and turns them into `--key=value` flags. Single-letter keys become `-k=value`. List values become one flag per item. A key ending in `+` appends to the value from an earlier file instead of replacing it.
- `read_config_file_data(path)`: reads local files and `http`/`https` locations.

### `k8e.config`

- `get_args_list(args_map, extra_args)`: merges `key=value` (or bare `key`, meaning `true`) extra arguments over a dict of defaults. It returns the sorted `--key=value` list.
- `arg_string(args)`: joins a list with single spaces.
- `parse_duration(text)`: parses durations such as `1h30m` or `1.5s` into nanoseconds. It raises `ValueError` on bad input.
- `CERTIFICATE_RENEW_DAYS`: a constant, set to 90.
- `ETCDConfig`, with `InitialOptions`, `ServerTrust` and `PeerTrust`, describes an embedded etcd configuration.
  - `ETCDConfig.to_dict()`: returns the config-file keys.
  - `ETCDConfig.to_config_file(extra_args)`: writes `<data_dir>/config` as YAML and returns its path. Each `--key=value` extra argument in it is stored as one of the following:
    - an integer;
    - a normalised duration, when the key contains `time`, `duration`, `interval` or `retention`;
    - a list of strings;
    - a boolean;
    - a string.

### `k8e.encrypt`

- `encrypt(passphrase, plaintext)`: returns `<salt>:<base64>`, using AES-256-GCM with a PBKDF2-SHA1 key (4096 iterations) and a random salt and nonce.
- `decrypt(passphrase, ciphertext)`: reverses `encrypt`. It raises `ValueError` on malformed input or a wrong passphrase.
- `key_hash(passphrase)`: the first 12 hex characters of the passphrase's SHA-256.
- `storage_key(passphrase)`: `/bootstrap/<key_hash>`.

### `k8e.dataverify`

- `verify_sums(root, sum_list_file)`: checks `<sha256> <file>` lines and returns the number of entries checked.
- `verify_links(root, link_list_file)`: checks `<link> <target>` lines and returns the number of entries checked.
- `verify(directory)`: runs both checks against `.sha256sums` and `.links`.

A failed check raises `VerificationError`.

### `k8e.datadir`

`resolve(data_dir)` and `local_home(data_dir, force_local)` return an absolute data directory.

- An empty value means `DEFAULT_DATA_DIR` (`/var/lib/k8e`) for root.
- Otherwise it means `DEFAULT_HOME_DATA_DIR` (`${HOME}/.k8e`).
- `$HOME`, `${HOME}` and `~` are expanded.

`HOME_CONFIG` and `GLOBAL_CONFIG` name the usual kubeconfig locations.

### `k8e.managed`

`Driver` is the abstract base for a managed datastore. `DriverRegistry` holds drivers in registration order:

- `register(driver)` adds a driver.
- `registered()` returns the drivers.
- `default()` returns the sole driver's name when no default is set.
- `select(config, endpoint, cluster_init, token, join_url)` picks the first match among:
  1. a driver already initialised on disk;
  2. a driver whose name matches the endpoint's scheme;
  3. the default driver, when no endpoint is set and the server initialises or joins a cluster.

### `k8e.deploy`

- `basename(path)`: the file name up to its first period.
- `checksum(content)`: hex SHA-256.
- `is_empty_yaml(content)`: true when only whitespace, comments and `---` remain.
- `yaml_to_objects(content)`: decodes each non-empty document into dicts and expands `*List` objects into their items.
- `should_skip_file(file_name, skips)`: skips dotfiles, listed names and anything that is not `.yaml`, `.yml` or `.json`.
- `should_disable_file(base, file_name, disables)`: checks parent directories below `base` and the name without its extension.
- `stage(assets, data_dir, template_vars, skips)`:
  - writes a mapping of asset names to bytes under `data_dir`, replacing template variables;
  - leaves out skipped names, names without their extension and names under skipped directories;
  - returns the paths it wrote.

### `k8e.cloudprovider`

`CloudProvider` answers instance queries from the nodes given to `set_nodes`. Before the first call to `set_nodes`, node lookups raise `RuntimeError`. Unknown nodes raise `LookupError`.

`node_addresses(node_name)` reads `NodeAddress` entries from each of these keys:

- `k8e.io/internal-ip` (comma separated in annotations);
- `k8e.io/external-ip` (comma separated in annotations);
- `k8e.io/hostname`.

For each key, annotations come first and labels are the fallback.

Operations the provider does not offer raise `NotImplementedByProvider`:

- `instance_type_by_provider_id`
- `instance_shutdown_by_provider_id`
- `node_addresses_by_provider_id`
- `add_ssh_key_to_all_instances`

## Example

```python
from k8e.config import get_args_list
from k8e.configfilearg import Parser

parser = Parser(
    after=["server", "agent"],
    flag_names=["--config", "-c"],
    env_name="K8E_CONFIG_FILE",
    default_config="/etc/k8e/config.yaml",
)
args = parser.parse(["k8e", "server", "--write-kubeconfig-mode", "644"])

print(get_args_list({"read-only-port": "0"}, ["fail-swap-on=false"]))
# ['--fail-swap-on=false', '--read-only-port=0']
```

```python
from k8e.encrypt import decrypt, encrypt

sealed = encrypt("token", b"bootstrap data")
assert decrypt("token", sealed) == b"bootstrap data"
```

## What it does not do

This is a library of helpers, not a running cluster.

- It has no command-line program.
- It does not start a kubelet, kube-proxy, API server or etcd.
- It serves no HTTP endpoints.
- It does not talk to a Kubernetes API. `yaml_to_objects` and `stage` prepare manifests, but nothing here applies them to a cluster or watches a directory for changes.
- `CloudProvider` works on the nodes it is given, not on a live informer.
- `DriverRegistry` comes with no drivers. Concrete datastores must subclass `Driver`.

## Tests

```
pip install -e ".[test]"
pytest
```