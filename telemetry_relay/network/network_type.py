import enum
import socket

import psutil


class NetworkEnum(enum.Enum):
    UDP = "udp"
    NONE = "none"


class NetworkHandler:
    def __init__(
        self, input_network_type: NetworkEnum, output_network_type: NetworkEnum
    ):
        self.input_network_type = input_network_type
        self.output_network_type = output_network_type

    def get_input_network_socket(self):
        return self.get_network_socket(self.input_network_type)

    def get_output_network_socket(self):
        return self.get_network_socket(self.output_network_type)

    def get_network_socket(self, network_type: NetworkEnum):
        if network_type == NetworkEnum.UDP:
            return socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        return None


def get_network_interfaces():
    """List the non-loopback IPv4 interfaces of this host."""
    interfaces = []
    for name, addresses in psutil.net_if_addrs().items():
        mac = next(
            (a.address for a in addresses if a.family == psutil.AF_LINK), None
        )
        for addr in addresses:
            if addr.family != socket.AF_INET:
                continue
            if addr.address.startswith("127."):
                continue
            interfaces.append(
                {
                    "name": name,
                    "address": addr.address,
                    "netmask": addr.netmask,
                    "mac": mac,
                }
            )
    return interfaces
