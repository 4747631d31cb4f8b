"""Event builder - stamps every new event with static and dynamic fields."""

from honeylager.providers import MetricProvider
from honeylager.transport import Event, Transport


class EventBuilder:
    """Creates events bound to one write key and dataset.

    Static fields are copied into each event as-is. Dynamic fields come from
    MetricProvider instances and are evaluated when the event is created, not
    when the provider is registered.
    """

    def __init__(
        self,
        write_key: str,
        dataset: str,
        providers: list[MetricProvider] | None = None,
    ):
        self.write_key = write_key
        self.dataset = dataset
        self._fields: dict = {}
        self._providers: list[MetricProvider] = list(providers or [])

    def add_field(self, name: str, value) -> None:
        self._fields[name] = value

    def add_dynamic_field(self, provider: MetricProvider) -> None:
        self._providers.append(provider)

    @property
    def providers(self) -> list[MetricProvider]:
        return list(self._providers)

    def new_event(self, transport: Transport) -> Event:
        event = Event(transport, write_key=self.write_key, dataset=self.dataset)
        event.add(self._fields)
        for provider in self._providers:
            event.add_field(provider.name, provider.value())
        return event
