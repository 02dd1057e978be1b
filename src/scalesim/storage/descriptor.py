# src/scalesim/storage/descriptor.py
"""
Reads the declared worker pools of a cluster from a Gardener Shoot manifest.

The manifest lives at `<directory>/<cluster_name>.yaml` and lists the pools
under `spec.provider.workers`:

    spec:
      provider:
        workers:
          - name: worker-a
            machine: {type: m5.large}
            maximum: 3
            zones: [eu-west-1a, eu-west-1b]
"""

import logging
import os
from typing import List

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..core.exceptions import NotFoundError, ScaleSimError
from ..models.cluster import CapacityPool
from .base_store import ClusterDescriptorProvider

logger = logging.getLogger(__name__)


class ShootFileDescriptorProvider(ClusterDescriptorProvider):
    def __init__(self, directory: str):
        self.directory = directory
        self._yaml = YAML(typ="safe")

    def _path_for(self, cluster_name: str) -> str:
        for ext in (".yaml", ".yml"):
            path = os.path.join(self.directory, f"{cluster_name}{ext}")
            if os.path.exists(path):
                return path
        raise NotFoundError(f"No descriptor found for cluster '{cluster_name}' in {self.directory}")

    def get_pools(self, cluster_name: str) -> List[CapacityPool]:
        path = self._path_for(cluster_name)
        try:
            with open(path, "r", encoding="utf-8") as f:
                shoot = self._yaml.load(f) or {}
        except YAMLError as e:
            raise ScaleSimError(f"Descriptor '{path}' is not valid YAML: {e}") from e

        workers = ((shoot.get("spec") or {}).get("provider") or {}).get("workers") or []
        pools = [parse_worker(worker) for worker in workers]
        logger.debug("Loaded %d pools for cluster '%s' from %s", len(pools), cluster_name, path)
        return pools


def parse_worker(worker: dict) -> CapacityPool:
    """Converts one entry of spec.provider.workers into a CapacityPool."""
    machine = worker.get("machine") or {}
    return CapacityPool(
        name=worker["name"],
        machine_type=machine.get("type", ""),
        zones=list(worker.get("zones") or []),
        maximum=int(worker.get("maximum", 0)),
        minimum=int(worker.get("minimum", 0)),
    )
