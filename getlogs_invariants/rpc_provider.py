import time, random, os, threading
from web3 import Web3
from web3.exceptions import Web3RPCError
from web3.middleware import ExtraDataToPOAMiddleware
from getlogs_invariants.metrics import RPC_REQUESTS, RPC_ERRORS
from getlogs_invariants.logging import log

# -----------------------------
# Node endpoints
# -----------------------------
class RpcProvider:
    def __init__(self, name, base_url, weight=1, key_env=None):
        self.name = name
        self.base_url = base_url
        self.key_env = key_env
        self.weight = weight
        self.cooldown_until = 0

    def available(self):
        return time.time() >= self.cooldown_until

    def cool_down(self, seconds=15):
        self.cooldown_until = time.time() + seconds

        log.warning(
            "rpc_cooldown",
            extra={
                "rpc": self.name,
                "cooldown_seconds": seconds,
            },
        )

    def build_url(self):
        """
        Endpoint URL, with the API key appended when key_env names one.
        """
        if not self.key_env:
            return self.base_url

        api_key = os.getenv(self.key_env)
        if not api_key:
            raise RuntimeError(
                f"Missing env var for RPC provider {self.name}: {self.key_env}"
            )

        return f"{self.base_url}/{api_key}"


class RpcPool:
    """Nodes of one chain that may be chosen as the node under test."""

    def __init__(self, providers):
        self.providers = providers

    def candidates(self):
        """Available providers, each once, in weighted random order."""
        weighted = []
        for p in self.providers:
            if p.available():
                weighted.extend([p] * max(1, p.weight))

        random.shuffle(weighted)
        seen = set()
        ordered = []
        for p in weighted:
            if p.name not in seen:
                seen.add(p.name)
                ordered.append(p)
        return ordered

    @classmethod
    def from_config(cls, rpc_configs: dict, chain: str) -> "RpcPool":
        chain_cfg = rpc_configs.get("chains", {}).get(chain)
        if not chain_cfg:
            raise RuntimeError(f"Chain config not found: {chain}")

        providers = []

        for cfg in chain_cfg.get("providers", []):
            if not cfg.get("enabled", True):
                continue

            key_env = cfg.get("api_key_env")
            if isinstance(key_env, list):
                key_env = random.choice(key_env)

            providers.append(
                RpcProvider(
                    name=cfg["name"],
                    base_url=cfg["base_url"],
                    weight=int(cfg.get("weight", 1)),
                    key_env=key_env,
                )
            )

        if not providers:
            raise RuntimeError(f"No RPC providers enabled for chain: {chain}")

        for p in providers:
            log.info(
                "rpc_enabled",
                extra={
                    "chain": chain,
                    "rpc": p.name,
                    "key_env": p.key_env,
                    "weight": p.weight,
                },
            )
        return cls(providers)


class RpcTemporarilyUnavailable(Exception):
    pass


def default_web3_factory(provider: RpcProvider, timeout) -> Web3:
    w3 = Web3(
        Web3.HTTPProvider(
            provider.build_url(),
            request_kwargs={"timeout": timeout},
        )
    )
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


class Web3Router:
    """
    Send every call of a run to one node.

    Until a node has answered, calls fail over across the pool in weighted
    order. The first provider that answers (a result or a JSON-RPC error
    object) is pinned, and every later call goes to it alone: comparing
    filtered and unfiltered views only means something on the same node.
    A transport failure on the pinned node is raised, never rerouted.
    """

    def __init__(
        self,
        rpc_pool,
        chain: str,
        timeout=10,
        penalize_seconds=15,
        web3_factory=default_web3_factory,
    ):
        self.rpc_pool = rpc_pool
        self.chain = chain
        self.timeout = timeout
        self.penalize_seconds = penalize_seconds
        self.web3_factory = web3_factory

        self._pinned: RpcProvider | None = None
        self._pinned_w3 = None
        self._select_lock = threading.Lock()

    @property
    def pinned(self) -> RpcProvider | None:
        return self._pinned

    def call(self, fn):
        if self._pinned is None:
            # one thread picks the node; the others wait for the pin
            with self._select_lock:
                if self._pinned is None:
                    return self._select_and_call(fn)
        return self._call_pinned(fn)

    def _attempt(self, provider, w3, fn):
        RPC_REQUESTS.labels(chain=self.chain, rpc=provider.name).inc()
        try:
            return fn(w3)
        except Exception:
            RPC_ERRORS.labels(chain=self.chain, rpc=provider.name).inc()
            raise

    def _pin(self, provider, w3):
        self._pinned = provider
        self._pinned_w3 = w3
        log.info("rpc_pinned", extra={"chain": self.chain, "rpc": provider.name})

    def _select_and_call(self, fn):
        last_exc = None
        attempted = []

        for provider in self.rpc_pool.candidates():
            attempted.append(provider.name)
            w3 = self.web3_factory(provider, self.timeout)
            try:
                result = self._attempt(provider, w3, fn)
            except Web3RPCError:
                self._pin(provider, w3)
                raise
            except Exception as e:
                log.warning(
                    "rpc_failover",
                    extra={
                        "chain": self.chain,
                        "rpc": provider.name,
                        "error": str(e)[:200],
                    },
                )
                provider.cool_down(self.penalize_seconds)
                last_exc = e
                continue

            self._pin(provider, w3)
            return result

        log.error(
            "rpc_round_failed",
            extra={"chain": self.chain, "attempted": attempted},
        )
        raise RpcTemporarilyUnavailable(
            f"RPC temporarily unavailable for chain={self.chain}"
        ) from last_exc

    def _call_pinned(self, fn):
        provider = self._pinned
        try:
            return self._attempt(provider, self._pinned_w3, fn)
        except Web3RPCError:
            raise
        except Exception as e:
            log.warning(
                "rpc_pinned_failed",
                extra={
                    "chain": self.chain,
                    "rpc": provider.name,
                    "error": str(e)[:200],
                },
            )
            raise RpcTemporarilyUnavailable(
                f"RPC {provider.name} unavailable for chain={self.chain}"
            ) from e
