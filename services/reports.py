"""Example service: exposed as /getter/reports/<fn> and /runner/reports/<fn>."""


async def ping(ctx):
    return {"pong": ctx["params"]}


async def echo_sum(ctx):
    values = ctx["params"].get("values") or []
    return {"sum": sum(values)}
