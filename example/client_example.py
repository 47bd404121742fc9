import sys

import httpx
from eth_account import Account

from trusted_forwarder.chain import encode_call
from trusted_forwarder.clients import RelayClient

wpk = "0x1111111111111111111111111111111111111111111111111111111111111111"  # demo originator key
originator = Account.from_key(wpk).address
recipient = "0x1234567890123456789012345678901234567890"


async def main(token_address: str):
    async with RelayClient(
        base_url="http://localhost:8000",
        timeout=httpx.Timeout(60.0, read=120.0)
    ) as client:
        request = await client.build_forward_request(
            originator=originator,
            target=token_address,
            data=encode_call("transfer(address,uint256)", recipient, 10),
        )
        signature = await client.sign(request, wpk)
        return await client.execute(request, signature)


if __name__ == "__main__":
    import asyncio
    # pass the token address printed by server_example.py
    result = asyncio.run(main(sys.argv[1]))
    print("Result:", result.to_canonical_json())
