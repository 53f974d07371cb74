"""eventgate delivery — hands routed events to the sinks that were selected.

The routing engine decides *where* an event goes; the SinkDispatcher owns
the registered sinks, passes their ids to the engine as the available set,
and calls ``accept`` on each selected sink.  Sinks are pluggable targets
implementing the BaseSink protocol.
"""
