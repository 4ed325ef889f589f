"""Config-file merging, etcd settings, bootstrap encryption, data checks and manifest helpers."""

__version__ = "0.1.0"