from fastapi import Request


def get_relay(request: Request):
    return request.app.state.relay
