class AuthZError(Exception):
    pass


class ConfigurationError(AuthZError):
    pass


class MissingOption(ConfigurationError):
    pass


class InvalidStage(ConfigurationError):
    pass


class InvalidPolicy(AuthZError, TypeError):
    pass
