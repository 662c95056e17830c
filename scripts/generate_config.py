import yaml

def generate_config():
    """
    Generate a sample config.yaml file.
    """
    config = {
        "global_config": {
            "log_level": "INFO",
            "log_path": "logs/"
        },
        "pool": {
            "max_connections": 5,
            "acquire_timeout": 10
        },
        "target": {
            "host": "127.0.0.1",
            "port": 8080,
            "connect_timeout": 3
        },
        "probe": {
            "workers": 8,
            "rounds": 4,
            "payload": "PING\n"
        }
    }

    with open("config.yaml", "w") as f:
        yaml.dump(config, f, default_flow_style=False)

if __name__ == "__main__":
    generate_config()
    print("Sample config.yaml file generated.")
