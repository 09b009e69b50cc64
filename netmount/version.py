from importlib.metadata import PackageNotFoundError, version

NETMOUNT_VENDOR = "netmount"
NETMOUNT_PRODUCT = "netmount"


def version_string():
    try:
        return version("netmount")
    except PackageNotFoundError:
        return '1.0.0'
