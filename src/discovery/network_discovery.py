"""
Local network detection and scan range generation
"""

import socket
import ipaddress
import logging
from typing import Dict, List, Optional

import psutil

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_NETWORK = '192.168.1.0/24'

class NetworkDiscovery:
    """Works out which /24 to sweep from the local interface addresses"""

    def __init__(self, config: Dict):
        self.config = config
        self.network_override: Optional[str] = config.get('network')
        self.fallback_network = config.get('fallback_network', DEFAULT_FALLBACK_NETWORK)

    def get_local_ip_address(self) -> Optional[str]:
        """
        Return the first non-loopback IPv4 interface address, or None
        """
        try:
            for interface_name, addresses in psutil.net_if_addrs().items():
                for address in addresses:
                    if address.family != socket.AF_INET:
                        continue
                    try:
                        ip = ipaddress.IPv4Address(address.address)
                    except ipaddress.AddressValueError:
                        continue
                    if ip.is_loopback or ip.is_link_local:
                        continue
                    logger.debug(f"Local IPv4 address on {interface_name}: {ip}")
                    return str(ip)
        except OSError as e:
            logger.warning(f"Could not read network interfaces: {e}")
        return None

    def detect_network(self) -> str:
        """
        Range to sweep: configured override, else the /24 around the local
        address, else the fallback network
        """
        if self.network_override:
            return self.network_override

        local_ip = self.get_local_ip_address()
        if local_ip:
            network = ipaddress.IPv4Network(f"{local_ip}/24", strict=False)
            logger.info(f"Local address {local_ip} -> scanning {network}")
            return str(network)

        logger.warning(f"No local IPv4 interface found, falling back to {self.fallback_network}")
        return self.fallback_network

    def generate_host_list(self, ip_range: str) -> List[str]:
        """Expand "a.b.c.d-w.x.y.z" or CIDR notation into host addresses"""
        all_ips = []
        if '-' in ip_range:
            start_ip, end_ip = ip_range.split('-')
            start = ipaddress.IPv4Address(start_ip.strip())
            end = ipaddress.IPv4Address(end_ip.strip())
            current = start
            while current <= end:
                all_ips.append(str(current))
                current += 1
        else:
            try:
                network = ipaddress.IPv4Network(ip_range.strip(), strict=False)
                all_ips.extend(str(ip) for ip in network.hosts())
            except ValueError:
                logger.warning(f"Invalid IP range: {ip_range}")
        return all_ips
