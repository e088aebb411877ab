import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import uvicorn

from loyaltyapi.config import settings

if __name__ == "__main__":
    # RUN_ADDRESS (host:port)에서 바인딩 주소 결정
    uvicorn.run(
        "loyaltyapi.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_config=None,
    )
