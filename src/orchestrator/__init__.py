"""
Repair passes: bulk clear/list and the incremental admin step.
"""
