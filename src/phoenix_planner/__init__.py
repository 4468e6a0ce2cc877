"""Position rescue planner: diagnose, simulate, plan and review."""
