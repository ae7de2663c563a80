"""pygame sandbox for AtomSim. Requires the optional ``pygame`` dependency."""
