"""
Dask Utilities for Per-Date Parallelism

Cluster management and task dispatch for the per-acquisition mapping work.
Each acquisition date is one independent delayed task; results are always
returned in submission order regardless of completion order.

Author: Diego Bengochea
"""

import gc
from contextlib import contextmanager
from typing import Any, Callable, List, Sequence

import dask
import psutil
from dask.diagnostics import ProgressBar
from dask.distributed import Client, LocalCluster

# Shared utilities
from shared_utils import get_logger

from .settings import ComputeSettings


class DaskClusterManager:
    """
    Manager for Dask computing resources.
    
    Handles local cluster setup for the distributed scheduler and the
    dispatch of per-date tasks on any of the supported schedulers.
    """
    
    def __init__(self, compute: ComputeSettings):
        """
        Initialize the Dask cluster manager.
        
        Args:
            compute: Compute settings (scheduler, workers, memory)
        """
        self.compute = compute
        self.logger = get_logger('burned_area_mapping.dask')
        
        self.scheduler = compute.scheduler
        self.num_workers = compute.num_workers or max(1, psutil.cpu_count(logical=False) or 1)
        self.threads_per_worker = compute.threads_per_worker
        self.memory_limit = compute.memory_limit
    
    @contextmanager
    def create_cluster(self):
        """
        Create a fresh local Dask cluster with cleanup on exit.
        
        Yields:
            dask.distributed.Client: Client bound to the new cluster
        """
        cluster = None
        client = None
        
        try:
            self.logger.info(f"Creating Dask cluster with {self.num_workers} workers, "
                             f"{self.memory_limit} memory limit, {self.threads_per_worker} threads per worker")
            
            cluster = LocalCluster(
                n_workers=self.num_workers,
                threads_per_worker=self.threads_per_worker,
                memory_limit=self.memory_limit,
            )
            client = Client(cluster)
            
            self.logger.info(f"Dask dashboard available at: {client.dashboard_link}")
            
            yield client
            
        except Exception as e:
            self.logger.error(f"Error in Dask cluster operations: {str(e)}")
            raise
            
        finally:
            if client is not None:
                self.logger.info("Closing Dask client...")
                client.close()
            
            if cluster is not None:
                self.logger.info("Closing Dask cluster...")
                cluster.close()
            
            gc.collect()
    
    def map_ordered(self, function: Callable, items: Sequence[Any], *shared_args) -> List[Any]:
        """
        Run `function(item, *shared_args)` for every item as independent tasks.
        
        Args:
            function: Pure per-item function
            items: Task inputs
            shared_args: Read-only arguments passed to every task
            
        Returns:
            List: Results in the order of `items`
        """
        if not items:
            return []
        
        # wrapped so dask hands dataclass inputs to the task untouched
        shared = [dask.delayed(arg, traverse=False) for arg in shared_args]
        tasks = [dask.delayed(function)(dask.delayed(item, traverse=False), *shared) for item in items]
        self.logger.info(f"Dispatching {len(tasks)} tasks on the '{self.scheduler}' scheduler")
        
        if self.scheduler == 'distributed':
            with self.create_cluster():
                results = dask.compute(*tasks)
        elif self.scheduler == 'synchronous':
            results = dask.compute(*tasks, scheduler='synchronous')
        else:
            with ProgressBar():
                results = dask.compute(*tasks, scheduler=self.scheduler, num_workers=self.num_workers)
        
        return list(results)
