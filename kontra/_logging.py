"""
_logging.py
===========
Logging functions for kontra.

All functions in this module have NO side effects except logging. They take
computed data as parameters and format/emit log messages.

This separation ensures:
- Logging can be easily disabled/mocked in tests
- Computation is separate from presentation
- Clear boundaries between analysis and reporting
"""

import logging
from typing import List, Sequence

from kontra._utils import summarize_ids


logger = logging.getLogger(__name__)


# ============================================================================ #
# System and Backend Logging (called at module import time)
# ============================================================================ #


def log_optimization_status(numba_available: bool) -> None:
    """
    Log system capabilities and numba availability at INFO level.

    Called once at module import time. Reports CPU count, memory, numba
    version (if available), LLVM info and threading configuration.

    Parameters
    ----------
    numba_available : bool
        Whether numba was successfully imported.
    """
    import os
    import platform

    cpu_count = os.cpu_count() or 1
    logger.info(
        f"System: {platform.machine()} ({platform.system()}), "
        f"{cpu_count} CPU cores, Python {platform.python_version()}"
    )

    try:
        import psutil

        mem = psutil.virtual_memory()
        logger.info(
            f"Memory: {mem.total / (1024**3):.1f} GB total, "
            f"{mem.available / (1024**3):.1f} GB available"
        )
    except ImportError:
        pass  # psutil not required

    if not numba_available:
        logger.info("Numba not installed; contrasts will run as pure Python")
        logger.info("Install numba for a compiled post-order pass: pip install numba")
        return

    import numba

    logger.info(f"Numba {numba.__version__} loaded successfully")

    try:
        import llvmlite

        logger.info(f"LLVM backend: llvmlite {llvmlite.__version__}")
    except (ImportError, AttributeError):
        pass  # LLVM version unavailable

    logger.info(f"Numba threads available: {numba.config.NUMBA_NUM_THREADS}")


def log_backend_availability(backends_available: List[str]) -> None:
    """
    Log which execution backends are available for the post-order pass.

    Parameters
    ----------
    backends_available : List[str]
        List of available backends (e.g., ['python', 'numba'])
    """
    logger.info(f"Available backends: {', '.join(backends_available)}")

    if "numba" in backends_available:
        logger.info("  numba: LLVM-compiled post-order pass (numba.njit)")

    if "python" in backends_available:
        logger.info("  python: reference implementation")

    best = backends_available[-1]  # Last in list is most optimized
    logger.info(f"Default backend='best' will use: {best}")


# ============================================================================ #
# Tree Logging (called during construction)
# ============================================================================ #


def log_polytomy_resolution(polytomy_nodes: Sequence[int], n_auxiliary: int) -> None:
    """
    Emit consolidated polytomy-resolution warning.

    Parameters
    ----------
    polytomy_nodes : Sequence[int]
        IDs of the nodes that had more than two children.
    n_auxiliary : int
        Number of zero-length auxiliary nodes that were added.
    """
    n_polytomies = len(polytomy_nodes)
    if n_polytomies == 0:
        return
    if n_polytomies == 1:
        logger.warning(
            "1 polytomy resolved (node %d): %d zero-length auxiliary node(s) "
            "added. Children were joined in ascending ID order.",
            polytomy_nodes[0],
            n_auxiliary,
        )
    elif n_polytomies <= 5:
        logger.warning(
            "%d polytomies resolved (nodes: %s): %d zero-length auxiliary "
            "nodes added. Children were joined in ascending ID order.",
            n_polytomies,
            ", ".join(map(str, polytomy_nodes)),
            n_auxiliary,
        )
    else:
        logger.warning(
            "%d polytomies resolved (nodes: %s): %d zero-length auxiliary "
            "nodes added. Children were joined in ascending ID order.",
            n_polytomies,
            summarize_ids(polytomy_nodes),
            n_auxiliary,
        )


def log_tree_summary(n_tips: int, n_internal: int, total_length: float) -> None:
    """
    Log the shape of a freshly validated tree at DEBUG level.

    Parameters
    ----------
    n_tips : int
        Number of tips.
    n_internal : int
        Number of internal nodes.
    total_length : float
        Sum of raw branch lengths.
    """
    logger.debug(
        "Tree validated: %d tips, %d internal nodes, total branch length %.6g",
        n_tips,
        n_internal,
        total_length,
    )


# ============================================================================ #
# Contrast Logging (called per computation)
# ============================================================================ #


def log_contrast_run(n_contrasts: int, backend: str, standardize: bool) -> None:
    """
    Log one compute_contrasts() call at INFO level.

    Parameters
    ----------
    n_contrasts : int
        Number of contrasts produced.
    backend : str
        Resolved backend name.
    standardize : bool
        Whether standardized contrasts were requested.
    """
    mode = "standardized" if standardize else "raw"
    logger.info(
        "compute_contrasts(%s, backend=%r): %d contrasts", mode, backend, n_contrasts
    )


def log_reconciliation(dropped_tips: Sequence[str], dropped_traits: Sequence[str]) -> None:
    """
    Warn about labels discarded while reconciling a tree with trait data.

    Parameters
    ----------
    dropped_tips : Sequence[str]
        Tips pruned from the tree because they had no trait value.
    dropped_traits : Sequence[str]
        Trait labels discarded because they are not tips of the tree.
    """
    for what, labels in (
        ("tip(s) pruned from tree (no trait value)", dropped_tips),
        ("trait value(s) discarded (label not in tree)", dropped_traits),
    ):
        n = len(labels)
        if n == 0:
            continue
        if n <= 5:
            logger.warning("%d %s: %s", n, what, ", ".join(labels))
        else:
            logger.warning(
                "%d %s: %s, ... (+%d more)", n, what, ", ".join(labels[:5]), n - 5
            )
