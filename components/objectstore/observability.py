
from __future__ import annotations

from contextlib import contextmanager

from opentelemetry import trace

tracer = trace.get_tracer("objectstore")


@contextmanager
def span(name: str, **attrs):
    with tracer.start_as_current_span(name) as current:
        for k, v in attrs.items():
            if v is not None:
                current.set_attribute(f"objectstore.{k}", v)
        yield current
