"""
Credscore — External collaborators
Directory, activity store, chain indexer, score store and metrics sink.
"""
