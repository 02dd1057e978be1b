import asyncio
import logging
import typing

from kubernetes_asyncio import client, config

logger = logging.getLogger(__name__)

# Global lock to prevent race conditions during config loading
_CONFIG_LOCK = asyncio.Lock()
_CONFIG_LOADED = False


async def ensure_k8s_config(kubeconfig: typing.Optional[str] = None) -> bool:
    """
    Ensures that the Kubernetes configuration is loaded exactly once.

    The virtual cluster is usually reached through a kubeconfig file written
    when it was bootstrapped; in-cluster config is tried first so the service
    also runs as a pod next to it.

    Returns:
        bool: True if config was loaded successfully (or was already loaded), False otherwise.
    """
    global _CONFIG_LOADED

    if _CONFIG_LOADED:
        return True

    async with _CONFIG_LOCK:
        if _CONFIG_LOADED:
            return True

        if not kubeconfig:
            try:
                logger.debug("Attempting to load in-cluster Kubernetes config...")
                config.load_incluster_config()
                logger.info("Loaded in-cluster Kubernetes configuration.")
                _CONFIG_LOADED = True
                return True
            except config.ConfigException:
                logger.debug("In-cluster config not found.")

        try:
            logger.debug("Attempting to load kubeconfig %s...", kubeconfig or "(default)")
            await config.load_kube_config(config_file=kubeconfig)
            logger.info("Loaded Kubernetes configuration from kubeconfig file.")
            _CONFIG_LOADED = True
            return True
        except (config.ConfigException, OSError) as e:
            logger.warning("Could not load kubeconfig: %s", e)

    logger.warning("Failed to load any Kubernetes configuration.")
    return False


async def get_core_v1_api(kubeconfig: typing.Optional[str] = None) -> typing.Optional[client.CoreV1Api]:
    """
    Returns a configured CoreV1Api instance.
    Safe to call concurrently.
    """
    if await ensure_k8s_config(kubeconfig):
        return client.CoreV1Api()
    return None
