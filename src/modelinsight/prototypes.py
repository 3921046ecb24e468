from abc import ABC, abstractmethod


class Protoresult(ABC):
    """
    Prototype class for results object, intended to be used in inheritance,
    not to be called.
    """
    @abstractmethod
    def summary(self):
        # Public method to print summary
        pass

    @abstractmethod
    def plot(self):
        # Public method to plot general results
        pass


class ConfigurationError(ValueError):
    """
    A request cannot be served as configured.

    Raised for a missing or invalid prediction type, a prediction type the
    model family does not support, an invalid confidence level, or when no
    data is available to predict on.
    """
    pass


class UnsupportedFeatureWarning(UserWarning):
    """
    A requested feature is not available and was dropped.

    Escalate to an error with
    ``warnings.simplefilter("error", UnsupportedFeatureWarning)``.
    """
    pass


class MissingValueWarning(UserWarning):
    pass
