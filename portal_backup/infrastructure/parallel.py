"""Parallel execution of independent tenant tasks."""
import multiprocessing
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Any, Callable, Union, Tuple

from portal_backup.core.logging import get_logger

logger = get_logger(__name__)

# Upper bound of tenant tasks running at the same time
TASKS_LIMIT = 10

def parse_worker_count(worker_count: Union[str, int]) -> int:
    """Parse worker count setting from configuration.

    Supports:
    - Integer value (e.g., "4")
    - Percentage of available CPUs (e.g., "50%")
    - "auto" for default of min(4, cpu_count)

    The result is always capped at TASKS_LIMIT.

    Args:
        worker_count: Worker count value to parse

    Returns:
        Number of workers to use
    """
    cpu_count = multiprocessing.cpu_count()
    default_workers = min(4, cpu_count)

    if not worker_count:
        return default_workers

    if isinstance(worker_count, int):
        return min(TASKS_LIMIT, max(1, worker_count))

    worker_str = str(worker_count).strip().lower()

    if worker_str.endswith('%'):
        try:
            percentage = float(worker_str[:-1])
            return min(TASKS_LIMIT, max(1, int(cpu_count * percentage / 100)))
        except ValueError:
            logger.warning(f"Invalid worker count percentage: {worker_str}, using default: {default_workers}")
            return default_workers

    if worker_str == 'auto':
        return default_workers

    try:
        return min(TASKS_LIMIT, max(1, int(worker_str)))
    except ValueError:
        logger.warning(f"Invalid worker count: {worker_str}, using default: {default_workers}")
        return default_workers

def process_with_threadpool(
    items: List[Any],
    processor_func: Callable[[Any], Any],
    num_workers: int = 4
) -> Tuple[List[Any], List[Tuple[Any, str]]]:
    """Process items using a thread pool executor.

    A failing item does not stop the others; its error is logged and
    returned alongside the successful results.

    Args:
        items: Items to process
        processor_func: Function to process each item
        num_workers: Number of worker threads (capped at TASKS_LIMIT)

    Returns:
        Tuple of (results, [(item, error message), ...])
    """
    results = []
    errors = []
    num_workers = min(TASKS_LIMIT, max(1, num_workers))

    with ThreadPoolExecutor(max_workers=num_workers, thread_name_prefix="Task") as executor:
        future_to_item = {executor.submit(processor_func, item): item for item in items}

        for future in as_completed(future_to_item):
            item = future_to_item[future]
            try:
                results.append(future.result())
            except Exception as e:
                logger.error(f"Error processing {item}: {str(e)}")
                errors.append((item, str(e)))

    return results, errors
