'''
Exceptions raised by the traffic grid simulator
'''


class ConfigurationError(ValueError):
    '''
    Invalid simulation parameters - raised at setup, before any cycle runs
    '''


class InvalidDimension(ConfigurationError):
    '''
    Grid rows or columns not positive
    '''


class UnreachableDestination(RuntimeError):
    '''
    Router produced an empty path

    Cannot happen on a connected grid with validated node ids, so this signals
    a broken invariant rather than a user error
    '''
