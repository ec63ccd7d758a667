# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/


class RemoteCommandFailed(Exception):

    def __init__(self, host, script: str, returncode: int, output: bytes = b''):
        output_text = output.decode(errors='backslashreplace')[-5000:]
        super().__init__(
            f"Script on {host!r} died with exit status {returncode}:\n"
            f"{script}\n"
            f"output: {output_text}")
        self.host = host
        self.script = script
        self.returncode = returncode
        self.output = output


class SshNotConnected(Exception):

    def __init__(self, ssh, message):
        super().__init__(message)
        self.ssh = ssh
