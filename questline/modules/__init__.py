"""Domain modules: progression rules, daily challenges, catalogs."""
