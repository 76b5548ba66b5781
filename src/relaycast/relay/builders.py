"""
Block builder endpoint registry.

Static catalog of MEV block builders and the relay URLs they accept
bundles on, per network. References:
https://www.mev.to/builders
https://www.rated.network/builders
"""

from enum import Enum
from typing import Iterable, List, Mapping, Optional, Tuple, Union

import structlog

from relaycast.config import Network
from relaycast.errors import NoEndpointForNetwork

logger = structlog.get_logger(__name__)


class BuilderIdentity(str, Enum):
    """Known relay operators, plus ``ALL`` meaning every one of them."""
    FLASHBOTS = "flashbots"
    BEAVERBUILD = "beaverbuild"
    RSYNC = "rsync"
    BUILDER0X69 = "0x69"
    GAMBITLABS = "gambitlabs"
    ETHBUILDER = "ethbuilder"
    TITAN = "titan"
    BUILDAI = "buildai"
    PAYLOAD = "payload"
    LIGHTSPEED = "lightspeed"
    NFACTORIAL = "nfactorial"
    BOBABUILDER = "bobabuilder"
    F1B = "f1b"
    JETBLDR = "jetbldr"
    PENGUINBUILD = "penguinbuild"
    LOKI = "loki"
    EDENNETWORK = "edennetwork"
    TBUILDER = "tbuilder"
    EIGENPHI = "eigenphi"
    BLOCKBEELDER = "blockbeelder"
    MANIFOLDFINANCE = "manifoldfinance"
    PANDABUILD = "pandabuild"
    SMITHBOT = "smithbot"
    ALL = "all"

    @classmethod
    def concrete(cls) -> List["BuilderIdentity"]:
        """Every real builder, in declaration order."""
        return [identity for identity in cls if identity is not cls.ALL]

    @classmethod
    def parse(cls, name: Union[str, "BuilderIdentity"]) -> "BuilderIdentity":
        """Look up an identity by name, case-insensitively."""
        if isinstance(name, cls):
            return name
        try:
            return cls(name.strip().lower())
        except ValueError:
            known = ", ".join(identity.value for identity in cls)
            raise ValueError(f"Unknown builder '{name}' (known: {known})") from None


EndpointTable = Mapping[BuilderIdentity, Mapping[Network, Tuple[str, ...]]]


BUILDER_ENDPOINTS: EndpointTable = {
    BuilderIdentity.FLASHBOTS: {
        Network.MAINNET: ("https://relay.flashbots.net/",),
        Network.GOERLI: ("https://relay-goerli.flashbots.net/",),
        Network.SEPOLIA: ("https://relay-sepolia.flashbots.net",),
    },
    BuilderIdentity.BEAVERBUILD: {Network.MAINNET: ("https://rpc.beaverbuild.org/",)},
    BuilderIdentity.RSYNC: {Network.MAINNET: ("https://rsync-builder.xyz/",)},
    BuilderIdentity.BUILDER0X69: {Network.MAINNET: ("https://builder0x69.io/",)},
    BuilderIdentity.GAMBITLABS: {Network.MAINNET: ("https://builder.gmbit.co/rpc/",)},
    BuilderIdentity.ETHBUILDER: {Network.MAINNET: ("https://eth-builder.com/",)},
    BuilderIdentity.TITAN: {Network.MAINNET: ("https://rpc.titanbuilder.xyz/",)},
    BuilderIdentity.BUILDAI: {
        Network.MAINNET: ("https://buildai.net/",),
        Network.GOERLI: ("https://buildai.net/goerli/",),
    },
    BuilderIdentity.PAYLOAD: {Network.MAINNET: ("https://rpc.payload.de/",)},
    BuilderIdentity.LIGHTSPEED: {Network.MAINNET: ("https://rpc.lightspeedbuilder.info/",)},
    BuilderIdentity.NFACTORIAL: {Network.MAINNET: ("https://rpc.nfactorial.xyz/",)},
    BuilderIdentity.BOBABUILDER: {Network.MAINNET: ("https://boba-builder.com/searcher/bundle",)},
    BuilderIdentity.F1B: {Network.MAINNET: ("https://rpc.f1b.io/",)},
    BuilderIdentity.JETBLDR: {Network.MAINNET: ("https://rpc.jetbldr.xyz/",)},
    BuilderIdentity.PENGUINBUILD: {Network.MAINNET: ("https://rpc.penguinbuild.org/",)},
    BuilderIdentity.LOKI: {Network.MAINNET: ("https://rpc.lokibuilder.xyz/",)},
    BuilderIdentity.EDENNETWORK: {
        Network.MAINNET: ("https://api.edennetwork.io/v1/bundle/",),
        Network.GOERLI: ("https://goerli.edennetwork.io/v1/bundle/",),
    },
    BuilderIdentity.TBUILDER: {Network.MAINNET: ("https://rpc.tbuilder.xyz/",)},
    BuilderIdentity.EIGENPHI: {Network.MAINNET: ("https://builder.eigenphi.io/",)},
    BuilderIdentity.BLOCKBEELDER: {Network.MAINNET: ("https://blockbeelder.com/rpc/",)},
    BuilderIdentity.MANIFOLDFINANCE: {Network.MAINNET: ("https://api.securerpc.com/v1/",)},
    BuilderIdentity.PANDABUILD: {Network.MAINNET: ("https://rpc.pandabuilder.io/",)},
    BuilderIdentity.SMITHBOT: {Network.MAINNET: ("https://smithbot.xyz/",)},
}


class EndpointRegistry:
    """
    Resolves builder identities into relay URLs.

    Resolution is pure and deterministic: builders are visited in
    declaration order and URLs shared by several builders are kept, since
    each one is a distinct target worth contacting.
    """

    def __init__(self, table: Optional[EndpointTable] = None):
        """
        Initialize the registry.

        Args:
            table: Builder -> network -> URLs map. Defaults to BUILDER_ENDPOINTS.
        """
        self._table = BUILDER_ENDPOINTS if table is None else table

    def resolve(
        self,
        identity: Union[str, BuilderIdentity],
        network: Union[str, Network],
    ) -> List[str]:
        """
        Resolve one identity against a network.

        Args:
            identity: A concrete builder or ``ALL``
            network: Target network

        Returns:
            Ordered list of endpoint URLs

        Raises:
            NoEndpointForNetwork: The builder (or, for ``ALL``, every builder)
                has no endpoint on the network
        """
        identity = BuilderIdentity.parse(identity)
        network = Network(network)

        if identity is not BuilderIdentity.ALL:
            urls = self._table.get(identity, {}).get(network, ())
            if not urls:
                raise NoEndpointForNetwork(identity.value, network.value)
            return list(urls)

        endpoints: List[str] = []
        for builder in BuilderIdentity.concrete():
            try:
                endpoints.extend(self.resolve(builder, network))
            except NoEndpointForNetwork:
                continue

        if not endpoints:
            raise NoEndpointForNetwork(identity.value, network.value)
        return endpoints

    def resolve_many(
        self,
        identities: Iterable[Union[str, BuilderIdentity]],
        network: Union[str, Network],
    ) -> List[str]:
        """
        Resolve several identities, skipping the ones without endpoints.

        Raises:
            NoEndpointForNetwork: Nothing at all resolved for the network
        """
        network = Network(network)
        requested: List[BuilderIdentity] = [BuilderIdentity.parse(i) for i in identities]

        endpoints: List[str] = []
        for identity in requested:
            try:
                endpoints.extend(self.resolve(identity, network))
            except NoEndpointForNetwork as e:
                logger.warning(
                    "builder_endpoint_unavailable",
                    builder=identity.value,
                    network=network.value,
                    error=str(e),
                )

        if not endpoints:
            names = ",".join(identity.value for identity in requested) or "none"
            raise NoEndpointForNetwork(names, network.value)
        return endpoints

    def builders_for(self, network: Union[str, Network]) -> List[BuilderIdentity]:
        """List the concrete builders that have an endpoint on a network."""
        network = Network(network)
        return [
            builder for builder in BuilderIdentity.concrete()
            if self._table.get(builder, {}).get(network)
        ]

