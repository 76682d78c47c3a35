"""Model Context Protocol types, messages and client handshake."""