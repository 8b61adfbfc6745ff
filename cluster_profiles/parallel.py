"""
Concurrent profile construction.

:py:func:`process_clusters` builds the profiles of many clusters on a thread pool, one cluster per task. Every worker
thread owns its own :py:class:`~cluster_profiles.context.ProfileContext`, so the only shared objects are the
(read-only) cluster descriptors; nothing is locked and workers never wait on each other.
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, TypeVar

from cluster_profiles.cluster import ClusterDescriptor
from cluster_profiles.context import ProfileContext, get_context
from cluster_profiles.pipelines import setup_profiles
from cluster_profiles.utilities.logging import mylog

T = TypeVar("T")

ClusterTask = Callable[[ClusterDescriptor, ProfileContext], T]


def _run(cluster: ClusterDescriptor, task: ClusterTask) -> T:
    context = setup_profiles(cluster, context=get_context())
    return task(cluster, context)


def process_clusters(
    clusters: Iterable[ClusterDescriptor],
    task: ClusterTask,
    max_workers: int = None,
) -> list[T]:
    """
    Build the profiles of each cluster and run ``task`` on them.

    Parameters
    ----------
    clusters : iterable of ClusterDescriptor
        The clusters.
    task : callable
        ``task(cluster, context)``, run on the worker thread right after the cluster's profiles were built on
        ``context``. Typically samples the cluster's particles. The context is reused for the worker's next cluster,
        so ``task`` must not keep references to its splines.
    max_workers : int, optional
        Number of worker threads. Defaults to the :py:class:`~concurrent.futures.ThreadPoolExecutor` default.

    Returns
    -------
    list
        The task results, in the order of ``clusters``.

    Raises
    ------
    Exception
        The first exception raised by a worker, after the pool has shut down.
    """
    clusters = list(clusters)
    mylog.info("Processing %d clusters on up to %s threads.", len(clusters), max_workers or "default")

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="cluster") as executor:
        futures = [executor.submit(_run, cluster, task) for cluster in clusters]

        return [future.result() for future in futures]
