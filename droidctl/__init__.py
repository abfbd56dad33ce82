"""Android device control and introspection over adb."""
