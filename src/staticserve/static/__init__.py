"""
The static file delivery pipeline.

Import from the submodules (staticserve.static.pipeline, .resolver,
.cache, .ranges, .encoding, .streams, .filesystem); this package module
stays empty so the http layer can import streams without a cycle.
"""
