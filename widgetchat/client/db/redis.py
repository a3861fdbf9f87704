from redis import Redis

import widgetchat.config.config as configs

redis_client = Redis(host=configs.REDIS_HOST, port=configs.REDIS_PORT, decode_responses=True)
