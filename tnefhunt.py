#! /usr/bin/env python3
# -*- coding: UTF-8 -*-
#
# Copyright (c) 2014, Dionach Ltd. All rights reserved. See LICENSE file.
#
# tnefhunt: search directories and sub directories for TNEF (winmail.dat) files,
# decode them and extract their attachments
#


import argparse
import logging
import os
import platform
import sys
import time
from typing import Optional

import colorama

import tnefutils
from config import TNEFHuntConfigSingleton
from PropIdEnum import PropIdEnum
from TNEFFile import TNEFFile
from pbar import MainProgressbar
from tnef import Attachment

app_version = '1.0'


###################################################################################################################################
#  __  __           _       _        _____                 _   _
# |  \/  | ___   __| |_   _| | ___  |  ___|   _ _ __   ___| |_(_) ___  _ __  ___
# | |\/| |/ _ \ / _` | | | | |/ _ \ | |_ | | | | '_ \ / __| __| |/ _ \| '_ \/ __|
# | |  | | (_) | (_| | |_| | |  __/ |  _|| |_| | | | | (__| |_| | (_) | | | \__ \
# |_|  |_|\___/ \__,_|\__,_|_|\___| |_|   \__,_|_| |_|\___|\__|_|\___/|_| |_|___/
#
###################################################################################################################################

class Hunter:

    pbar: MainProgressbar

    def hunt_tnefs(self) -> tuple[int, int, list[TNEFFile]]:

        conf: TNEFHuntConfigSingleton = TNEFHuntConfigSingleton.instance()

        if conf.search_file:
            all_files: list[TNEFFile] = [TNEFFile(os.path.basename(conf.search_file),
                                                  os.path.dirname(conf.search_file))]
        else:
            all_files = self.__find_all_files_in_search_directory()

        total_files_decoded, attachments_found = self.__decode_all_files(all_files, conf.max_file_size)

        return total_files_decoded, attachments_found, all_files

    def extract_attachments(self, all_files: list[TNEFFile], extract_dir: str) -> int:

        extracted: int = 0
        for tnef_file in all_files:
            extracted += len(tnef_file.extract(extract_dir))
        logging.info(f'Extracted {extracted} attachments to {extract_dir}')
        return extracted

    def output_report(self, all_files: list[TNEFFile], total_files_decoded: int, attachments_found: int) -> None:

        conf: TNEFHuntConfigSingleton = TNEFHuntConfigSingleton.instance()

        tnef_report: str = 'TNEF Hunt Report - %s\n%s\n' % (
            time.strftime("%H:%M:%S %d/%m/%Y"), '=' * 100)
        tnef_report += 'Searched %s\n' % (conf.search_file or conf.search_dir)
        tnef_report += 'Command: %s\n' % (' '.join(sys.argv))
        tnef_report += 'Uname: %s\n' % (' | '.join(platform.uname()))
        tnef_report += 'Decoded %s files. Found %s attachments.\n%s\n\n' % (
            total_files_decoded, attachments_found, '=' * 100)

        for tnef_file in sorted(all_files):
            if tnef_file.errors:
                error_line: str = f"ERROR: {tnef_file.path}: {'; '.join(tnef_file.errors)}"
                print(colorama.Fore.RED + tnefutils.unicode_to_ascii(error_line))
                tnef_report += error_line + '\n\n'
                continue
            if tnef_file.tnef_data is None:
                continue

            file_header: str = f"TNEF: {tnef_file.path} ({tnefutils.size_friendly(tnef_file.size)})"
            print(colorama.Fore.GREEN + tnefutils.unicode_to_ascii(file_header))
            tnef_report += file_header + '\n'

            attachment_lines: list[str] = [self.__describe_attachment(index, attachment)
                                           for index, attachment in enumerate(tnef_file.tnef_data.attachments)]
            if attachment_lines:
                attachment_text: str = '\t' + '\n\t'.join(attachment_lines)
                print(colorama.Fore.YELLOW + tnefutils.unicode_to_ascii(attachment_text))
                tnef_report += attachment_text + '\n'

            if conf.show_warnings and tnef_file.warnings:
                warning_text: str = '\tWARNING: ' + '\n\tWARNING: '.join(tnef_file.warnings)
                print(colorama.Fore.MAGENTA + tnefutils.unicode_to_ascii(warning_text))
                tnef_report += warning_text + '\n'

            tnef_report += '\n'

        tnef_report = tnef_report.replace('\n', os.linesep)

        print(colorama.Fore.WHITE +
              f'Report written to {tnefutils.unicode_to_ascii(conf.output_file)}')

        with open(conf.output_file, encoding='utf-8', mode='w') as f:
            f.write(tnef_report)

    def __describe_attachment(self, index: int, attachment: Attachment) -> str:

        line: str = f"[{index}] {attachment.title or '[NoTitle]'} ({tnefutils.size_friendly(len(attachment.data))}"
        if attachment.modified:
            line += f" {attachment.modified.strftime('%d/%m/%Y %H:%M')}"
        mime_tag = attachment.get_attribute(PropIdEnum.PidTagAttachMimeTag)
        if mime_tag:
            line += f" {mime_tag.text()}"
        return line + ')'

    def __find_all_files_in_search_directory(self) -> list[TNEFFile]:
        """Recursively searches the search directory for files with one of the TNEF extensions"""

        conf: TNEFHuntConfigSingleton = TNEFHuntConfigSingleton.instance()

        self.pbar = MainProgressbar()
        self.pbar.create('Doc Search', 'TNEF')

        tnef_files: list[TNEFFile] = []
        root_dir_dirs: Optional[list[str]] = None
        root_items_completed = 0
        root_total_items: int = 0

        for root, sub_dirs, files in os.walk(conf.search_dir):
            if root_dir_dirs is None:
                root_dir_dirs = [os.path.join(root, sub_dir) for sub_dir in sub_dirs]
                root_total_items = len(root_dir_dirs) + len(files)
            if root in root_dir_dirs:
                root_items_completed += 1

            for filename in files:
                if root == conf.search_dir:
                    root_items_completed += 1
                if tnefutils.get_ext(filename) in conf.search_extensions:
                    tnef_file = TNEFFile(filename, root)
                    tnef_file.set_file_stats()
                    tnef_files.append(tnef_file)
                self.pbar.update(items_found=len(tnef_files),
                                 items_total=root_total_items,
                                 items_completed=root_items_completed)

        self.pbar.finish()

        return tnef_files

    def __decode_all_files(self, tnef_files: list[TNEFFile], max_file_size: int) -> tuple[int, int]:
        """Decodes every file, returning the number of files decoded and the attachments found in them"""

        self.pbar = MainProgressbar()
        self.pbar.create('Decode', 'Attachment')

        total_files: int = len(tnef_files)
        files_completed = 0
        files_decoded = 0
        attachments_found = 0

        for tnef_file in tnef_files:
            tnef_data = tnef_file.decode(max_file_size)
            if tnef_data is not None:
                files_decoded += 1
                attachments_found += len(tnef_data.attachments)
            files_completed += 1
            self.pbar.update(items_found=attachments_found, items_total=total_files, items_completed=files_completed)

        self.pbar.finish()

        return files_decoded, attachments_found


###################################################################################################################################
#  __  __       _
# |  \/  | __ _(_)_ __
# | |\/| |/ _` | | '_ \
# | |  | | (_| | | | | |
# |_|  |_|\__,_|_|_| |_|
#
###################################################################################################################################


def main() -> None:
    application_path: str = '.'
    if getattr(sys, 'frozen', False):
        application_path = os.path.dirname(sys.executable)
    elif __file__:
        application_path = os.path.dirname(os.path.abspath(__file__))
    logging.basicConfig(filename=os.path.join(application_path, 'tnefhunt.log'),
                        encoding='utf-8',
                        format='%(asctime)s %(message)s',
                        level=logging.DEBUG)

    logging.info('Starting')

    colorama.init()

    # Command Line Arguments
    arg_parser: argparse.ArgumentParser = argparse.ArgumentParser(prog='tnefhunt', description='TNEF Hunt v%s: search directories and sub directories for TNEF (winmail.dat) files and extract their attachments.' % (
        app_version), formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    arg_parser.add_argument(
        '-s', dest='search', help='base directory to search in')
    arg_parser.add_argument(
        '-f', dest='file', help='single TNEF file to decode instead of searching')
    arg_parser.add_argument(
        '-e', dest='extensions', help='TNEF file extensions to search')
    arg_parser.add_argument(
        '-o', dest='outfile', help='output file name for the report')
    arg_parser.add_argument(
        '-x', dest='extract', help='directory to extract attachments into')
    arg_parser.add_argument('-w', dest='warnings', action='store_true',
                            default=False, help='show recoverable decoding problems')
    arg_parser.add_argument(
        '-S', dest='max_size', help='largest file size in bytes to decode')
    arg_parser.add_argument(
        '-C', dest='config', help='configuration file to use')

    args: argparse.Namespace = arg_parser.parse_args()

    config_file = str(args.config)

    # The singleton is initiated at the first call with the hardcoded default values.
    # If exists, read the config file
    if config_file != 'None':
        TNEFHuntConfigSingleton.from_file(config_file=config_file)

    # Finally, read the CLI parameters as they override the default and config file values
    TNEFHuntConfigSingleton.from_args(search_dir=str(args.search),
                                      search_file=str(args.file),
                                      output_file=str(args.outfile),
                                      extract_dir=str(args.extract),
                                      extensions_string=str(args.extensions),
                                      show_warnings=args.warnings,
                                      max_file_size=str(args.max_size))

    hunter = Hunter()
    total_files_decoded, attachments_found, all_files = hunter.hunt_tnefs()

    # report findings
    hunter.output_report(all_files, total_files_decoded, attachments_found)

    extract_dir: Optional[str] = TNEFHuntConfigSingleton.instance().extract_dir
    if extract_dir:
        extracted: int = hunter.extract_attachments(all_files, extract_dir)
        print(colorama.Fore.WHITE + f'Extracted {extracted} attachments to {tnefutils.unicode_to_ascii(extract_dir)}')


def run() -> None:
    try:
        main()
        logging.info('Exiting')
    except KeyboardInterrupt:
        print('Cancelled by user.')
        sys.exit(0)
    except Exception as ex:
        print('ERROR: ' + str(ex))
        logging.exception('Exiting')
        sys.exit(1)


if __name__ == "__main__":
    run()
