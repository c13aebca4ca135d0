import os

# ======= Board limits =======
# Canvas rows and shape rows are single bytes, so nothing may exceed 8 cells.
MAX_SIDE = max(1, min(8, int(os.getenv("CL_MAX_SIDE", "8"))))

# ======= Search switches =======
ALLOW_ROTATION   = int(os.getenv("CL_ALLOW_ROTATION", "1")) != 0
PRUNE_THRESHOLD  = int(os.getenv("CL_PRUNE_THRESHOLD", "0"))
FIRST_FIT        = int(os.getenv("CL_FIRST_FIT", "0")) != 0
ASCENDING_PIECES = int(os.getenv("CL_ASCENDING_PIECES", "0")) != 0

# ======= Fan-out =======
WORKERS        = int(os.getenv("CL_WORKERS", "1"))
FRONTIER_DEPTH = int(os.getenv("CL_FRONTIER_DEPTH", "1"))

# 0 keeps every leaf; a positive value stops collecting once reached.
MAX_LEAVES     = int(os.getenv("CL_MAX_LEAVES", "0"))

# ======= HTTP layer =======
RESULT_LIMIT   = int(os.getenv("CL_RESULT_LIMIT", "50"))

# ======= Outputs =======
# Relative paths resolve against the app directory.
WRITE_OUTPUTS = int(os.getenv("CL_WRITE_OUTPUTS", "0")) != 0
LEAVES_OUT    = os.getenv("CL_LEAVES_OUT", "outputs/leaves.txt")
LAYOUT_HTML   = os.getenv("CL_LAYOUT_HTML", "outputs/layout_view.html")


class CFG:
    MAX_SIDE = MAX_SIDE

    ALLOW_ROTATION   = ALLOW_ROTATION
    PRUNE_THRESHOLD  = PRUNE_THRESHOLD
    FIRST_FIT        = FIRST_FIT
    ASCENDING_PIECES = ASCENDING_PIECES

    WORKERS        = WORKERS
    FRONTIER_DEPTH = FRONTIER_DEPTH
    MAX_LEAVES     = MAX_LEAVES

    RESULT_LIMIT = RESULT_LIMIT

    WRITE_OUTPUTS = WRITE_OUTPUTS
    LEAVES_OUT    = LEAVES_OUT
    LAYOUT_HTML   = LAYOUT_HTML


__all__ = ["CFG", "MAX_SIDE"]
