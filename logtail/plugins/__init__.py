"""Query client plugins, one package per remote log-search API."""
