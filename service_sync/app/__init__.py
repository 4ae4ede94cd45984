"""
Offline access service package.

The service lets a mobile client call a remote service catalog while
tolerating intermittent connectivity:
- Reads: served from the local cache when fresh
- Writes/unreachable calls: deferred into a durable per-site queue
- Replay: the sync runner drains the queue once connectivity returns

Structure:
- app.domain: Typed records (options, outcomes, cache and queue entries).
- app.storage: Durable local database shared by cache, queue and log.
- app.caching: CacheStore and its storage backends.
- app.connectivity: Online/offline state.
- app.adapters: HTTP clients for the remote catalog and file transfers.
- app.gateway: The call-dispatch engine.
- app.sync: Queue, replay runner, sync log and scheduling.
- app.sites: Registry of known sites.
- app.lang: Language string synchronization.
- app.main: FastAPI control surface and service wiring.
- app.cli: Command line replay.
"""
