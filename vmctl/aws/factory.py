"""AWS backend factory.

``BACKEND`` is the instance type consumed by
:func:`vmctl.factory.retrieve_instance`.
"""

from vmctl.aws.instance import Instance


BACKEND: type[Instance] = Instance
