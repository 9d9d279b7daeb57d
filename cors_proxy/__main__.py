import uvicorn

from cors_proxy.vars import HOST, PORT


def main():
    uvicorn.run("cors_proxy.server:app", host=HOST, port=PORT)


if __name__ == "__main__":
    main()
