import json
import random
import socket
import time


def main():
    host = "127.0.0.1"
    port = 6343
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    namespaces = ["default", "payments", "kube-system", "monitoring"]

    for _ in range(200):
        verdict = random.choice(["FORWARDED", "FORWARDED", "FORWARDED", "DROPPED"])
        msg = {
            "flow": {
                "time": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                "verdict": verdict,
                "source": {"namespace": random.choice(namespaces), "pod_name": "client-7d9f"},
                "destination": {"namespace": random.choice(namespaces), "pod_name": "api-5c4b"},
                "l4": {random.choice(["TCP", "UDP"]): {"destination_port": 443}},
                "Summary": "TCP Flags: SYN",
            }
        }
        if verdict == "DROPPED":
            msg["flow"]["drop_reason_desc"] = "POLICY_DENIED"
        sock.sendto(json.dumps(msg).encode(), (host, port))
        time.sleep(0.02)


if __name__ == "__main__":
    main()
