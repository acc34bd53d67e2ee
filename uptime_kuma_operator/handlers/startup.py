"""Startup configuration for the operator."""
import logging

import kopf
from kubernetes import config
from loguru import logger

from ..utils.config import Config
from ..utils.constants import API_GROUP, FINALIZER


def load_kubernetes_config(app_config: Config) -> None:
    """Load the kubeconfig file, the in-cluster config, or the local default, in that order."""
    if app_config.kubeconfig:
        config.load_kube_config(config_file=app_config.kubeconfig)
        logger.info(f"Loaded Kubernetes configuration from {app_config.kubeconfig}")
        return

    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        config.load_kube_config()
        logger.info("Loaded local Kubernetes configuration")


def configure_operator(settings: kopf.OperatorSettings, **_):
    """Configure the operator on startup."""
    app_config = Config()

    settings.posting.level = logging.INFO
    settings.watching.connect_timeout = app_config.watch_connect_timeout
    settings.watching.server_timeout = app_config.watch_server_timeout
    settings.execution.max_workers = app_config.max_workers
    settings.persistence.finalizer = FINALIZER
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(prefix=API_GROUP)
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(prefix=API_GROUP)

    try:
        load_kubernetes_config(app_config)
    except config.ConfigException as e:
        logger.error(f"Failed to load Kubernetes configuration: {e}")
        raise

    logger.info(f"Operator configured with {app_config.max_workers} workers, "
                f"drift interval {app_config.drift_interval}s, retry delay {app_config.retry_delay}s")
    logger.info(f"Default UptimeKumaConfig name: {app_config.default_config_name}")
