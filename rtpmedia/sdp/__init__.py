"""SDP parsing, payload format lists and minimal audio offer generation."""