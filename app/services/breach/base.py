from abc import ABC, abstractmethod


class BreachProvider(ABC):

    @abstractmethod
    def fetch_breach_summary(self, email: str) -> dict | None:
        """
        Returns the raw breach-name list payload, e.g.
        {"breaches": [["Adobe", "LinkedIn"]]}

        Returns None when the provider has no record of the email.
        Raises ProviderError for every other failure.
        """
        pass

    @abstractmethod
    def fetch_breach_analytics(self, email: str) -> dict | None:
        """
        Returns the raw analytics payload:
        {
          ExposedBreaches: {breaches_details: [...]},
          BreachMetrics: {...},
          BreachesSummary: {...},
          PastesSummary: {...}
        }

        Returns None when the provider has no record of the email.
        Raises ProviderError for every other failure.
        """
        pass
