import logging

from eth_account import Account

from trusted_forwarder.recipients import ERC20Mock
from trusted_forwarder.servers import RelayServer


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# Settings come from FORWARDER_* environment variables (or a .env file)
app = RelayServer.from_settings(title="Forwarder Relay")

# Deploy a token that trusts the forwarder and fund a demo originator
token = app.ledger.deploy(ERC20Mock, app.forwarder.address)
DEMO_ORIGINATOR = Account.from_key("0x" + "11" * 32).address
token.functions.mint(DEMO_ORIGINATOR, 1000).transact(sender=app.relayer.address)

logging.getLogger(__name__).info("Demo token deployed at %s", token.address)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="localhost", port=8000, log_level="debug")
